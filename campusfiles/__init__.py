"""
campusfiles - data repair and reconciliation for an academic file-sharing app.
"""
