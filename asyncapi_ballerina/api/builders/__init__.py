"""Builders turning decoded documents into Ballerina syntax nodes."""
