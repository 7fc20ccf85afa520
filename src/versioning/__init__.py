"""Version specifiers, manifests and package request parsing."""
