"""
Test Fixtures and Utilities

Shared test data, utilities, and fixtures for comprehensive testing.

This module provides:
- Synthetic Up API payload builders
- A scripted fake of requests.Session for HTTP-level tests

All test data is synthetic and does not contain real financial information.
"""
