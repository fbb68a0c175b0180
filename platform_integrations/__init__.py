# Platform Integrations Service
"""
Connects user accounts to external project-management platforms
(Jira, Monday.com, TROFOS) and normalizes their data into one
canonical project model.
"""

__version__ = "1.0.0"
