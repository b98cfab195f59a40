"""
Team membership management: adding, re-assigning and removing members.
"""
