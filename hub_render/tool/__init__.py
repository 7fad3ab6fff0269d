"""Command line tool for hub-render."""
