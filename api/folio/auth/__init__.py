"""Bearer-token authentication for tokens issued by the identity provider."""
