"""
starcharts - GitHub star history client.

Fetches a repository's stargazer timeline from the GitHub REST API using a
rotating pool of tokens, a rate-limit gate in front of every credential and
an etag-aware cache in front of every resource.
"""

__version__ = "0.1.0"
