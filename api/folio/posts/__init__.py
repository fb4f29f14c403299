"""User posts: drafts, publishing, the public feed and "my posts"."""
