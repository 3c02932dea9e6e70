"""
Shifts application for Bastion.

This is the main application of the project. It handles:
- Shift, alert, template and audit models
- The workflow engine (status graph, transitions, bulk actions, metrics)
- ORM adapters that connect the engine to the database
"""
