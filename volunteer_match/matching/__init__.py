"""
Volunteer recommendation engine.

Responsibilities:
- Load the user's profile and participation history.
- Exclude activities the user already applied to or completed.
- Score the remaining ONG volunteering activities with the LLM scorer,
  falling back to deterministic rules when the LLM is unavailable.
- Return a short, explained, score-ordered list of matches.
"""
