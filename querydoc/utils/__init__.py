"""Utility functions and classes for querydoc."""

from querydoc.utils import logging, text

__all__ = ("logging", "text")
