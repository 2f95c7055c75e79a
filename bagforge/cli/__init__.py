"""Command line interface for bagforge."""
