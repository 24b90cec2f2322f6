# Services package init
"""
Naksh Backend — Services Layer
================================

What:  Business logic between routes (HTTP) and the database (persistence).
How:   Stateless service classes with a module-level singleton. Every method
       receives the request's AsyncSession, flushes its own writes so
       constraint violations surface inside the request, and raises APIError
       for every rule it enforces.

Service Inventory:
    - UserService:         local profiles
    - PostService:         posts, live-post check (deleted → 404, expired → 410)
    - CommentService:      comments on live posts
    - ReactionService:     the reaction toggle and reaction views
    - FollowService:       follow / unfollow, follower lists
    - ChatService:         chats and membership
    - MessageService:      send, Sent → Delivered → Read
    - ModerationService:   flags, content removal, suspensions
    - DeviceTokenService:  push token registration
    - MediaService:        upload validation in front of the media host
"""
