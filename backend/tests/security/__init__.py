"""Security tests for the document control service

This module contains security-focused tests including:
- Authentication bypass attempts
- Company isolation (cross-company reads and writes)
- Injection strings in identifiers and names
"""
