"""
HTTP API blueprints for operators and the status dashboard.
"""
