"""Core application plumbing: configuration, logging, security, errors."""
