"""Command-line front end for timeblocks."""
