"""
Qup Backend - Services Layer
==============================

Business logic shared by the REST routers and the GraphQL resolvers.

Service Inventory:
    - AuthService:         registration, login, token refresh and revocation
    - UserService:         profiles, roles, presence
    - ChannelService:      channels, membership, visibility rules
    - MessageService:      messages, threads, answers, soft deletion
    - QuestionService:     questions, best answer, closing
    - VoteService:         weighted votes with serialized totals
    - FileService:         upload validation and storage
    - NotificationService: per-user notifications
    - SearchService:       substring search over messages, questions, users

Every method takes the request's AsyncSession first and only flushes; the
session dependency commits once the request succeeds.
"""
