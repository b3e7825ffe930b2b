"""
Task synchronization subsystem.

Components:
- task_models.py: data structures (Task, TaskFilters, TaskStats, OpResult)
- task_actions.py: the closed set of snapshot transitions
- task_state.py: TaskSnapshot + the pure reducer
- task_query.py: list-query parameters, paging and client-side search
- task_sync.py: TaskSyncController, the async operations against the store
"""
