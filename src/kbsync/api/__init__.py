"""kbsync HTTP API."""
