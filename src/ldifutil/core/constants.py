"""Shared constants across the application."""

# Truth value strings
YES_VALUES = ('1', 'TRUE', 'YES', 'ON', 'true', 'yes', 'on')

# Continuation handling
FOLD_EMPTY_FIRST = 'empty-first'
FOLD_ALWAYS = 'always'
FOLD_POLICIES = (FOLD_EMPTY_FIRST, FOLD_ALWAYS)

# Default configuration values
DEFAULT_CONNECT_TIMEOUT = 5.0
DEFAULT_ENCODING = 'utf-8'
DEFAULT_SEARCH_FILTER = '(objectClass=*)'

# Exit statuses
EXIT_USAGE = 1
EXIT_IO_ERROR = 2
EXIT_DIRECTORY_ERROR = 3
