"""
Command bounded context: domain layer.

This module contains all domain logic for the command context:
- Free-text command interpretation
- The fixed catalog of analysis stages and their orchestration
- Aggregation of stage outcomes
- The execution state machine
"""
