"""Clinic intake toolkit.

Fills the clinic intake PDF from collected patient answers, resolves the
clinic-day schedule from the document store and uploads finished forms.
"""

__version__ = "0.1.0"
