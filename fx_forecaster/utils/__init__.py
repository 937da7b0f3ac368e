"""Shared utilities: errors, logging, decorators, paths and validation."""
