"""Service layer for Newsdesk."""
