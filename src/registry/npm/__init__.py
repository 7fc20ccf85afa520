"""NPM registry package.

This package provides the npm registry access used by fetch runs:
- client.py: async HTTP access to package documents, version manifests and tarballs
- search.py: the search endpoint used to list the top packages
- errors.py: registry failure types (not found, no matching version, bad response)
"""
