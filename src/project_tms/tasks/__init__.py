"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TimeTracking, Note) + wire format
- time_tracking.py: pure start/stop/elapsed functions on TimeTracking
- task_store.py: task CRUD, status transitions, the single-active-timer rule
- board.py: four-column board projection + BoardView observer
- analytics.py: per-project summary
- timer_ticker.py: asyncio loop reporting the live elapsed time
"""
