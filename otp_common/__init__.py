# otp_common/__init__.py
"""Shared building blocks of the email one-time code service."""
