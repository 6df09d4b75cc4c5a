"""Funds module - Processes, funds and their jury."""
