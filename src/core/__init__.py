"""Core domain package for clusterwatch.

Core contains the spot grammar, the relevance filter, the line channels and
the telnet session state machine without any Telegram or socket-specific
code, keeping the cluster logic portable.
"""
