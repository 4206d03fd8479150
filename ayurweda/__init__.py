"""
Ayurweda

A FastAPI-based Ayurvedic healthcare and education platform: patients book
doctors and order herbal medicines, doctors run their schedules and
consultations, students apply to courses, and admins manage all of it.
"""

__version__ = "1.0.0"
