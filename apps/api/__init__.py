"""
REST API application for Bastion.

This app provides REST API endpoints for:
- The shift board (read and single moves)
- Bulk actions and their stored results
- Transition history and urgency alerts
- Token-based authentication for API clients

Built with Django REST Framework.
"""
