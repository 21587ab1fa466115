"""Execution of approved plans."""
