"""Utils module.

This module provides the exception hierarchy and text formatting helpers.
"""
