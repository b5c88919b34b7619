"""
NewsX Utilities
===============

Logging, exceptions, validators and text helpers shared across the crawler.
"""
