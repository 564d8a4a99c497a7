"""Command runners behind the CLI; each returns a process exit code."""
