"""LDAP client used to compare LDIF values against a live directory.

Built on *ldap3* so it works with any directory flavour (389ds/FreeIPA,
OpenLDAP, Active Directory...).

Features
~~~~~~~~
* Simple bind with a service account DN/password.
* ``ldaps://`` URLs connect over TLS.  Certificate validation can be switched
  off per client with ``insecure_skip_verify=True``; nothing process-wide is
  touched, so other connections keep validating.
* The connect + bind handshake runs on a daemon thread with a deadline
  (default 5 seconds).  When the deadline passes the attempt is reported as a
  :class:`~ldifutil.errors.DirectoryTimeoutError`; a connection that completes
  afterwards is unbound and thrown away instead of being handed back.  The
  abandoned thread never keeps the process alive, and socket reads share the
  same timeout so a stalled server cannot block it forever.
* :meth:`DirectoryLookupClient.lookup` performs one base-scope search on the
  exact DN and returns the values of a single attribute.
"""
from __future__ import annotations

import logging
import ssl
import threading
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Callable, List, Mapping

from ldap3 import BASE, NONE, Connection, Server, Tls
from ldap3.core.exceptions import LDAPException

from .core.constants import DEFAULT_CONNECT_TIMEOUT, DEFAULT_SEARCH_FILTER
from .errors import DirectoryError, DirectoryTimeoutError

logger = logging.getLogger("ldifutil.ldap")

__all__ = ["DirectoryLookupClient", "build_server"]

RESULT_SUCCESS = 0
RESULT_NO_SUCH_OBJECT = 32

ConnectionFactory = Callable[[Server, str, str], Connection]


# Helper ---------------------------------------------------------------------


def build_server(
    url: str,
    insecure_skip_verify: bool = False,
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
) -> Server:
    """Build an ldap3 :class:`Server` with correct TLS settings."""
    use_ssl = url.lower().startswith("ldaps://")
    clean_host = url.replace("ldap://", "").replace("ldaps://", "").rstrip("/")

    tls: Tls | None = None
    if use_ssl:
        tls = Tls(validate=ssl.CERT_NONE if insecure_skip_verify else ssl.CERT_REQUIRED)
    return Server(clean_host, use_ssl=use_ssl, get_info=NONE, tls=tls, connect_timeout=connect_timeout)


def _default_connection(server: Server, user: str, password: str) -> Connection:
    return Connection(
        server,
        user=user,
        password=password,
        auto_bind=False,
        raise_exceptions=False,
        receive_timeout=server.connect_timeout,
    )


def _discard_late_connection(future: Future) -> None:
    """Done-callback for connect attempts the caller already gave up on."""
    if future.cancelled() or future.exception() is not None:
        return
    conn = future.result()
    logger.debug("Discarding connection to %s that completed after the deadline", conn.server)
    try:
        conn.unbind()
    except LDAPException as exc:
        logger.debug("Ignoring error while closing late connection: %s", exc)


def _attribute_values(attributes: Mapping[str, Any], name: str) -> List[str]:
    """Return ``name``'s values from an ldap3 attribute mapping as strings."""
    wanted = name.lower()
    raw: Any = None
    for key, value in attributes.items():
        if key.lower() == wanted:
            raw = value
            break
    if raw in (None, "", [], ()):
        return []
    if not isinstance(raw, (list, tuple)):
        raw = [raw]
    return [v.decode("utf-8", "replace") if isinstance(v, bytes) else str(v) for v in raw]


# Public API -----------------------------------------------------------------


class DirectoryLookupClient:
    """Exact-DN, single attribute lookups against one directory server."""

    def __init__(
        self,
        url: str,
        bind_dn: str,
        password: str,
        *,
        insecure_skip_verify: bool = False,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        connection_factory: ConnectionFactory | None = None,
    ):
        self.url = url
        self.bind_dn = bind_dn
        self._password = password
        self.insecure_skip_verify = insecure_skip_verify
        self.connect_timeout = connect_timeout
        self._connection_factory = connection_factory or _default_connection
        self._conn: Connection | None = None

    def __repr__(self) -> str:  # pragma: no cover – cosmetic
        return (
            f"DirectoryLookupClient(url={self.url!r}, bind_dn={self.bind_dn!r}, "
            f"insecure_skip_verify={self.insecure_skip_verify})"
        )

    # Connection handling ----------------------------------------------------

    def _open(self, server: Server) -> Connection:
        conn = self._connection_factory(server, self.bind_dn, self._password)
        try:
            bound = conn.bind()
        except LDAPException as exc:
            raise DirectoryError(f"Cannot connect to {self.url}: {exc}") from exc
        if not bound:
            result = conn.result or {}
            conn.unbind()
            raise DirectoryError(
                f"Bind as {self.bind_dn!r} to {self.url} failed: {result.get('description', 'unknown error')}"
            )
        return conn

    def connect(self) -> "DirectoryLookupClient":
        """Open and bind the connection, giving up after ``connect_timeout`` seconds."""
        if self._conn is not None:
            return self

        server = build_server(
            self.url,
            insecure_skip_verify=self.insecure_skip_verify,
            connect_timeout=self.connect_timeout,
        )
        logger.debug("Connecting to %s as %s (timeout=%ss)", self.url, self.bind_dn, self.connect_timeout)

        future: Future = Future()

        def _attempt() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                future.set_result(self._open(server))
            except Exception as exc:
                future.set_exception(exc)

        threading.Thread(target=_attempt, name="ldifutil-connect", daemon=True).start()
        try:
            self._conn = future.result(timeout=self.connect_timeout)
        except FutureTimeoutError:
            future.add_done_callback(_discard_late_connection)
            raise DirectoryTimeoutError(
                f"Connection to {self.url} timed out after {self.connect_timeout}s"
            ) from None

        logger.info("Connected to %s", self.url)
        return self

    def close(self) -> None:
        if self._conn is not None:
            conn, self._conn = self._conn, None
            conn.unbind()

    def __enter__(self) -> "DirectoryLookupClient":
        return self.connect()

    def __exit__(self, *exc_info) -> None:
        self.close()

    # Lookups ----------------------------------------------------------------

    def lookup(self, dn: str, attribute: str) -> List[str] | None:
        """Return ``attribute``'s values on ``dn``.

        ``None`` means the entry does not exist, an empty list that the entry
        exists without the attribute.  The directory does not guarantee value
        order.
        """
        if self._conn is None:
            raise DirectoryError("Not connected")

        try:
            found = self._conn.search(
                search_base=dn,
                search_filter=DEFAULT_SEARCH_FILTER,
                search_scope=BASE,
                attributes=[attribute],
            )
        except LDAPException as exc:
            raise DirectoryError(f"Search for {dn} failed: {exc}") from exc

        if not found:
            result = self._conn.result or {}
            if result.get("result") in (RESULT_SUCCESS, RESULT_NO_SUCH_OBJECT):
                return None
            raise DirectoryError(
                f"Search for {dn} failed: {result.get('description')} {result.get('message', '')}".rstrip()
            )

        for entry in self._conn.response or ():
            if entry.get("type") != "searchResEntry":
                continue
            return _attribute_values(entry.get("attributes") or {}, attribute)
        return None
