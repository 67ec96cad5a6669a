"""Per-mode scoring and progression rules.

Each engine is a set of pure functions over `SessionState`: they never touch timers,
the supply pipeline or persistence; the session controller applies their results.
"""
