"""
Task subsystem.

Components:
- task_models.py: data structures (Task, RecurrenceRule, owners, users, groups)
- task_store.py: SQLite-backed storage for tasks, owners, lists and notifications
- recurrence.py: occurrence rules and the per-cycle streak/reset state machine
- today.py: daily "today" list reconciliation
- links.py: symmetric before/after links
- slot_scheduler.py: greedy day-slot placement
- sorting.py: attribute sorting
- scoring.py / currency.py: completion score and currency rewards
- deadlines.py / dynamic_steps.py: other daily jobs
- task_scheduler.py: cron-driven daily trigger
- task_api.py: high-level entry points used by the rest of the app
"""
