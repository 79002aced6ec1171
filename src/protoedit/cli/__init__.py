"""Command line interface for protoedit."""
