"""
Team feature module.

Teams are the tenant boundary; access to manage them is decided by
``taskhub.features.permissions``.
"""
