"""Pydantic schemas package.

Folder intent:
  common.py      — CamelModel base + HealthResponse (all schemas inherit CamelModel)
  submission.py  — upload success / failure envelopes and the environment check
"""
