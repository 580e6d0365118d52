"""
SindicApp - Forum & Workplace Reporting API

Authentication core: token lifecycle, server-side refresh sessions
and role-based access control.
"""

__version__ = "0.1.0"
