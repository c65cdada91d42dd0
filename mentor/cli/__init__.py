"""Command line interface for interactive mastery sessions."""
