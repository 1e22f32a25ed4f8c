"""
katc Command-Line Interface
===========================

This package provides the command-line tools for katc:

- **katcc**: the kat compiler

Each tool is a Click application with help text and consistent exit
codes (see katc.cli.errors).
"""

__all__ = ["katcc"]
