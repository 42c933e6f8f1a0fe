"""Entity API service package."""
