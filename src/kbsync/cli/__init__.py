"""kbsync command-line interface."""
