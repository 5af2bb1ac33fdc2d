"""Helpers shared by the command line entry points."""
