"""
NewsX Ingestion Module
======================

Network and parsing components of the crawler.

This module handles:
- Shared HTTP session management
- RSS feed parsing and per-feed deduplication
- Article page fetching, content sanitizing and author extraction
"""
