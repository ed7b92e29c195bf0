"""Domain validation utilities."""

from .email import EmailValidator

__all__ = ['EmailValidator']
