"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskStatus, TaskPriority)
- task_codec.py: record file format (header + body)
- task_validation.py: invariants and the four-way validation outcome
- task_transitions.py: status state machine
- task_store.py: status-directory storage (atomic rewrite, rename moves)
- task_sync.py: reconciliation pass that repairs status drift
- task_api.py: high-level operations (add, complete, cancel, find, pick, sync)
"""
