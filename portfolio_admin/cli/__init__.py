"""
Command Line Layer.

This package defines the typer application and its rich output helpers.
"""
