# Services package.
#
# Each module exposes a focused set of async functions that encapsulate
# business logic for a single domain aggregate:
#
#   user_service     - registration, login, current user
#   profile_service  - profiles and follow / unfollow
#   article_service  - listing, feed, CRUD, slugs, favorites
#   comment_service  - comments on articles
#   tag_service      - tag list and tag reconciliation
#   enrichment       - viewer-relative article / comment / profile views
#
# All service functions accept an AsyncSession as their first argument
# so that the router layer controls the transaction boundary via the
# ``get_db`` dependency.  Storage access goes through the repositories
# in ``conduit.repositories``.
