"""
Users as seen by team access control: identity and the acting-user dependency.
"""
