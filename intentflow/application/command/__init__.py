"""
Application layer for the command bounded context.

Entry points exposed to hosts: classify a command, run the analysis
pipeline, execute an intent, and drive per-session state machines.
No framework or infrastructure imports allowed.
"""
