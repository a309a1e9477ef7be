"""Run monitor — pure read-only projection over a run's event stream.

Modules
-------
projection
    ``project`` folds ProgressEvents into a frozen ``RunSnapshot``.
renderer
    ``ProgressRenderer`` turns snapshots, records and verification
    results into Rich renderables, including ``Rich.Live`` follow mode.
"""
