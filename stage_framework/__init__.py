"""
Stage Framework module.

Provides the branching-dialog runtime built on top of the engine:
- Dialog (nodes, choices, trees, navigation, content providers)
"""
