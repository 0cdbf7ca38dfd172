"""
Encuesta ballot service.

Participants register by email, cast one vote per office, and results are
tallied per candidate.
"""

__version__ = '1.0.0'
