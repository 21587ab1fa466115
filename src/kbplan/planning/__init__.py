"""Plan construction and the approval gate."""
