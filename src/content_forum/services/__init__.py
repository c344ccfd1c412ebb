"""Business logic layer. Services raise `content_forum.errors` exceptions; routes translate them."""
