"""
Outbound appointment notifications (email) and their delivery queue.
"""
