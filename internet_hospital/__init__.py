"""
Internet Hospital

FastAPI service where doctors publish appointment slots and patients
reserve them, with document review by administrators and in-app
notifications for every reservation change.
"""

__version__ = "1.0.0"
