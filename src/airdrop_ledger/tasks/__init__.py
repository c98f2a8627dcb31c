"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskRef, TaskStatus, CustodyReport)
- task_store.py: SQLite tables for tasks and claims
- task_manager.py: creation, funding, claims and claim rollback
"""
