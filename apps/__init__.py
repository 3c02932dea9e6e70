"""
Bastion Django applications package.

This package contains all Django apps for the shift board:
- core: Shared result types and API error handling
- shifts: Main application (models, workflow engine, ORM adapters)
- api: REST API endpoints and token authentication
"""
