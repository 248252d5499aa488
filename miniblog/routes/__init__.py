"""
Mini-Blog Backend — API Routes Package
========================================

Route Inventory (all under API_PREFIX, default /api):
    - auth.py:      POST /auth/signup, POST /auth/login, GET /auth/me
    - users.py:     GET  /users, /users/search, /users/{id}, /users/{id}/posts,
                         /users/username/{username}, /users/username/{username}/posts
    - posts.py:     GET  /posts, /posts/{id}, /posts/mention/{username}
                    POST /posts, /posts/{id}/like, /posts/{id}/repost
                    PUT  /posts/{id}    DELETE /posts/{id}
    - comments.py:  POST /comments, /comments/{id}/like
                    GET  /comments/post/{postId}    DELETE /comments/{id}
    - health.py:    GET  /health

Routes stay thin: parse the request, call a service, wrap the result in the
response envelope. Business rules live in services.
"""
