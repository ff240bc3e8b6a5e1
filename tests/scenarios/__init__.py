"""Live scenario tests for clicompat.

These run the real tool against real infrastructure and are skipped unless
CLICOMPAT_BINARY and CLICOMPAT_DOWNLOAD_SCRIPT are set.
"""
