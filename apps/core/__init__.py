"""
Core application for Bastion.

Shared building blocks used across the other apps:
- Tagged result types (Ok / Err) and the error code taxonomy
- The DRF exception handler that renders errors in one body shape
"""
