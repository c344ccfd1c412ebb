"""
# Data Models Package

Pydantic models defining the API contracts and stored document shapes.

- **`forum_models`**: Categories, tags, posts (with related-product snapshots) and comments.
- **`user_models`**: Accounts, authentication payloads and the activity log.
- **`banner_models`**: Promotional banners.
- **`integration_models`**: Payloads exchanged with the identity service, product catalog and CDN.
- **`common`**: Pagination metadata and the error envelope.

Request models (`Create*Request`, `Update*Request`) validate and sanitize input; response
models (`*Response`) define what leaves the API.
"""
