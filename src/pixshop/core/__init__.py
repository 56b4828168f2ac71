"""
Core modules for pixshop.

This package contains the core business logic for:
- Configuration management
- Canvas geometry (square padding, hotspot marking, crop back)
- Operation dispatch to the Gemini image model
- Client-side edit operations and their transports
"""
