"""Structured Ballerina syntax nodes used by the generators."""
