"""
School Feasibility Reporting Service
Blueprint registry: health_bp (liveness), scenario_bp (listing, workflow, export).
"""
