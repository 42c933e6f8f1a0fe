"""
Domain primitives: error taxonomy, tagged results, query options and CSV export.
"""
