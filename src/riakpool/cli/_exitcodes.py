"""Process exit codes for riakc."""

SUCCESS = 0
STORE_ERROR = 1
USAGE_ERROR = 2
