"""
Common utilities for the flash runtime launcher.

Modules:
- manifest: version manifest client with HTTPS -> HTTP fallback
- runtime: runtime locator and installer
- platforms: supported platforms and their runtime layout
- events: one-way status sink for the presentation layer
"""

__all__ = [
    "manifest",
    "runtime",
    "platforms",
    "events",
]
