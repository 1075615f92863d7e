"""
API boundary for vocalnotes.

Design intent:
- Accept recorded notes and return immediately; processing continues in the background.
- Expose notes, the canonical property and a live event stream.
- Keep domain logic out of the routers.
"""
