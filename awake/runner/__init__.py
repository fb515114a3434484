"""
Job runner components.

- caller.py: Outbound HTTP requests
- executor.py: Job execution with retry logic and run recording
- scheduler.py: Per-job wake timers and fire handling
- rehydrator.py: Rebuilds the wake table at startup
"""
