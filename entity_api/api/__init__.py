"""
HTTP layer: app assembly, dependencies, outcome handling and routers.
"""
