import io

import pytest

from ldifutil import main
from ldifutil.config import Config
from ldifutil.core import application
from ldifutil.core.constants import EXIT_DIRECTORY_ERROR, EXIT_IO_ERROR, EXIT_USAGE
from ldifutil.errors import DirectoryError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("LDIFUTIL_DEBUG", "LDIFUTIL_FOLD_POLICY", "LDAP_CONNECT_TIMEOUT", "LDIFUTIL_ENCODING"):
        monkeypatch.delenv(name, raising=False)


def _write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return str(path)


@pytest.mark.parametrize(
    "entry_point,argv",
    [
        (main.extract_main, ["only-one"]),
        (main.diff_main, ["a.ldif"]),
        (main.diff_main, ["a", "b", "c", "d"]),
        (main.directory_diff_main, ["in.ldif", "mail", "ldap://x", "dc=x", "cn=admin"]),
        (main.strip_main, ["in.ldif", "out.ldif"]),
    ],
)
def test_wrong_argument_count_prints_usage(entry_point, argv, capsys):
    with pytest.raises(SystemExit) as excinfo:
        entry_point(argv)
    assert excinfo.value.code == EXIT_USAGE
    captured = capsys.readouterr()
    assert "usage:" in captured.out


def test_extract(tmp_path, capsys):
    path = _write(tmp_path, "in.ldif", "dn: cn=a,dc=x\nmail: a@x.com\nmail: b@x.com\n\n")
    assert main.extract_main([path, "MAIL"]) == 0
    assert capsys.readouterr().out == "cn=a,dc=x:\n  - a@x.com\n  - b@x.com\n"


def test_extract_missing_file(tmp_path, capsys):
    code = main.extract_main([str(tmp_path / "missing.ldif"), "mail"])
    assert code == EXIT_IO_ERROR
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "missing.ldif" in captured.err


def test_full_diff(tmp_path, capsys):
    left = _write(tmp_path, "1.ldif", "dn: cn=a,dc=x\ncn: A\n\n")
    right = _write(tmp_path, "2.ldif", "dn: cn=a,dc=x\ncn: B\n\n")
    assert main.diff_main([left, right]) == 0
    assert capsys.readouterr().out == "cn=a,dc=x\n"


def test_attribute_diff(tmp_path, capsys):
    left = _write(tmp_path, "1.ldif", "dn: cn=a\ncn: A\nmail: a@x\n\ndn: cn=b\nmail: b@x\n")
    right = _write(tmp_path, "2.ldif", "dn: cn=a\ncn: Z\nmail: a@x\n\ndn: cn=b\nmail: other@x\n")
    assert main.diff_main([left, right, "mail"]) == 0
    assert capsys.readouterr().out == "cn=b\n"


def test_diff_folds_every_continuation(tmp_path, capsys):
    left = _write(tmp_path, "1.ldif", "dn: cn=a\ndescription: one\n two\n")
    right = _write(tmp_path, "2.ldif", "dn: cn=a\ndescription: one\n three\n")
    assert main.diff_main([left, right]) == 0
    assert capsys.readouterr().out == "cn=a\n"


def test_fold_policy_override(tmp_path, capsys, monkeypatch):
    monkeypatch.setenv("LDIFUTIL_FOLD_POLICY", "always")
    path = _write(tmp_path, "in.ldif", "dn: cn=a\ndescription: one\n two\n")
    assert main.extract_main([path, "description"]) == 0
    assert capsys.readouterr().out == "cn=a:\n  - one\ntwo\n"


def test_invalid_configuration(tmp_path, capsys, monkeypatch):
    monkeypatch.setenv("LDIFUTIL_FOLD_POLICY", "sometimes")
    path = _write(tmp_path, "in.ldif", "dn: cn=a\ncn: A\n")
    assert main.extract_main([path, "cn"]) == EXIT_USAGE
    assert "fold policy" in capsys.readouterr().err


def test_strip(tmp_path):
    source = _write(tmp_path, "in.ldif", "dn: cn=a\nmail: x\ncn: A\n\n")
    target = tmp_path / "out.ldif"
    assert main.strip_main([source, str(target), "mail,userPassword"]) == 0
    assert target.read_text(encoding="utf-8") == "dn: cn=a\ncn: A\n\n"


def test_strip_unwritable_output(tmp_path, capsys):
    source = _write(tmp_path, "in.ldif", "dn: cn=a\ncn: A\n")
    target = tmp_path / "no-such-dir" / "out.ldif"
    assert main.strip_main([source, str(target), "mail"]) == EXIT_IO_ERROR
    assert "out.ldif" in capsys.readouterr().err


class _FakeClient:
    instances = []

    def __init__(self, url, bind_dn, password, *, insecure_skip_verify=False, connect_timeout=5.0):
        self.url = url
        self.insecure_skip_verify = insecure_skip_verify
        self.connect_timeout = connect_timeout
        self.closed = False
        _FakeClient.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True

    def lookup(self, dn, attribute):
        return {"uid=a,dc=example,dc=org": ["a@x"]}.get(dn)


class _UnreachableClient(_FakeClient):
    def __enter__(self):
        raise DirectoryError("Connection to ldaps://down timed out after 5.0s")


def test_directory_diff(tmp_path, capsys, monkeypatch):
    _FakeClient.instances = []
    monkeypatch.setattr(application, "DirectoryLookupClient", _FakeClient)
    path = _write(
        tmp_path,
        "in.ldif",
        "dn: uid=a,dc=example,dc=org\nmail: a@x\nmail: a2@x\n\n"
        "dn: uid=b,dc=exam\n ple,dc=org\nmail: b@x\n",
    )
    code = main.directory_diff_main(
        [path, "mail", "ldaps://dir.example.org", "dc=example,dc=org", "cn=admin", "pw"]
    )
    assert code == 0
    assert capsys.readouterr().out == (
        "uid=a,dc=example,dc=org:\n"
        "  - LDIF: a@x - Match in directory: Yes\n"
        "  - LDIF: a2@x - Match in directory: No\n"
        "uid=b,dc=example,dc=org:\n"
        "  - Entry not found in directory.\n"
    )
    (client,) = _FakeClient.instances
    assert client.insecure_skip_verify is True
    assert client.closed


def test_directory_diff_plain_ldap_validates(tmp_path, monkeypatch):
    _FakeClient.instances = []
    monkeypatch.setattr(application, "DirectoryLookupClient", _FakeClient)
    monkeypatch.setenv("LDAP_CONNECT_TIMEOUT", "2.5")
    path = _write(tmp_path, "in.ldif", "dn: uid=a,dc=example,dc=org\nmail: a@x\n")
    main.directory_diff_main([path, "mail", "ldap://dir.example.org", "dc=example,dc=org", "cn=admin", "pw"])
    (client,) = _FakeClient.instances
    assert client.insecure_skip_verify is False
    assert client.connect_timeout == 2.5


def test_directory_connection_failure(tmp_path, capsys, monkeypatch):
    monkeypatch.setattr(application, "DirectoryLookupClient", _UnreachableClient)
    path = _write(tmp_path, "in.ldif", "dn: uid=a,dc=example,dc=org\nmail: a@x\n")
    code = main.directory_diff_main([path, "mail", "ldaps://down", "dc=example,dc=org", "cn=admin", "pw"])
    assert code == EXIT_DIRECTORY_ERROR
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "timed out" in captured.err


class _PasswordCheckingClient(_FakeClient):
    def __init__(self, url, bind_dn, password, **kwargs):
        super().__init__(url, bind_dn, password, **kwargs)
        self.bind_dn = bind_dn
        self.password = password


@pytest.mark.parametrize("password", ["-s3cret", "--weird", "-"])
def test_directory_diff_accepts_values_starting_with_dash(password, tmp_path, capsys, monkeypatch):
    _FakeClient.instances = []
    monkeypatch.setattr(application, "DirectoryLookupClient", _PasswordCheckingClient)
    path = _write(tmp_path, "in.ldif", "dn: uid=a,dc=example,dc=org\nmail: a@x\n")
    code = main.directory_diff_main(
        [path, "mail", "ldap://dir.example.org", "dc=example,dc=org", "cn=admin", password]
    )
    assert code == 0
    (client,) = _FakeClient.instances
    assert client.password == password
    assert capsys.readouterr().out == "uid=a,dc=example,dc=org:\n  - LDIF: a@x - Match in directory: Yes\n"


def test_extract_attribute_name_starting_with_dash(tmp_path, capsys):
    path = _write(tmp_path, "in.ldif", "dn: cn=a\n-odd: value\ncn: A\n")
    assert main.extract_main([path, "-odd"]) == 0
    assert capsys.readouterr().out == "cn=a:\n  - value\n"


def test_strip_keeps_windows_line_endings(tmp_path):
    source = tmp_path / "in.ldif"
    source.write_bytes(b"dn: cn=a\r\nmail: x\r\ncn: A\r\n\r\n")
    target = tmp_path / "out.ldif"
    assert main.strip_main([str(source), str(target), "mail"]) == 0
    assert target.read_bytes() == b"dn: cn=a\r\ncn: A\r\n\r\n"


def test_application_uses_client_override(tmp_path, monkeypatch):
    def _no_network(*args, **kwargs):
        raise AssertionError("override must replace the directory client")

    monkeypatch.setattr(application, "DirectoryLookupClient", _no_network)
    path = _write(
        tmp_path,
        "in.ldif",
        "dn: uid=a,dc=example,dc=org\nmail: a@x\n\ndn: uid=c,dc=example,dc=org\nmail: c@x\n",
    )
    out = io.StringIO()
    app = application.Application(config=Config())
    count = app.directory_diff(
        path,
        "mail",
        "ldap://unused",
        "dc=example,dc=org",
        "cn=admin",
        "pw",
        out,
        client_override=_FakeClient("ldap://unused", "cn=admin", "pw"),
    )
    assert count == 2
    assert out.getvalue() == (
        "uid=a,dc=example,dc=org:\n"
        "  - LDIF: a@x - Match in directory: Yes\n"
        "uid=c,dc=example,dc=org:\n"
        "  - Entry not found in directory.\n"
    )
