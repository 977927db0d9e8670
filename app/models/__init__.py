"""
School Feasibility Reporting Service
Shared Flask-SQLAlchemy handle.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
