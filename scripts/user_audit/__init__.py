"""User/group audit over a remote identity service.

Lists principals from a directory (AWS IAM or IAM Identity Center) with
pagination, optionally resolves each principal's groups with a bounded
number of requests in flight, filters by name and group regex patterns,
and writes the matching principals to a report.
"""
