"""
Recommendation analytics.

Responsibilities:
- Keep an in-process log of recommendation requests.
- Summarise which scoring strategy served them and how fast.
"""
