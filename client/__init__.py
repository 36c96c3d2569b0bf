"""
Client package for the Group Chat Relay.

This package contains a programmatic relay client:
- Joining and chatting
- Sending images
- Requesting older history
"""
