"""
Infrastructure layer: configuration, logging, the SSH client and the
forwarding services built on top of it.
"""
