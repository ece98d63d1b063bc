"""
Chore subsystem.

Components:
- chore_models.py: data structures (TaskDefinition, CompletionRecord, ChoreStatus, ...)
- chore_errors.py: error taxonomy
- chore_store.py: file-backed durable storage with atomic commits
- recurrence.py: pure status derivation
- completion.py: batch submission transactor (single-writer lock)
- timeline.py: projected due dates for the yearly diagram
- chore_api.py: submission and read API used by presentation layers
"""
