"""
Social Graph Service - profiles, follow workflow, feed, discovery and direct messages
"""
