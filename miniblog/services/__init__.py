"""
Mini-Blog Backend — Services Layer
====================================

What:  Business rules between the routes (HTTP) and the ORM (persistence).
How:   Services work on the request's AsyncSession (passed per call, or held
       by the per-request AuthService) and raise MiniBlogError variants.
       Routes never touch SQL directly.

Service Inventory:
    - AuthService:     password hashing, signup/login, token issue/verify
    - UserService:     profile lookups, user search, user post feeds
    - PostService:     post CRUD, like toggle, re-post, mention search
    - CommentService:  comment create/list/like/delete with post linkage
    - MentionResolver: @username extraction and batched resolution
    - pagination:      the one page/limit/sort routine every list uses
"""
