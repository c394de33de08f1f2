# Services package.
#
# Each module exposes a focused set of async functions that encapsulate
# business logic and database access:
#
#   article_service       — index, detail, related, search, create, update
#   keyword_service       — find-or-create and keyword-set replacement
#   category_service      — active categories for the article forms
#   user_service          — caller and subscriber lookups
#   notification_service  — new-article mails for subscribers
#
# All service functions accept an AsyncSession as their first argument
# so that the router layer controls the transaction boundary via the
# ``get_db`` dependency.
