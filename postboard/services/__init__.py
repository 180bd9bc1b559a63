# Services package.
#
# post_service: list/get/create/delete plus like, unlike and comment
#                mutations for the Post aggregate, run as optimistic
#                read-modify-write cycles over PostStore.
#
# All service functions accept an AsyncSession as their first argument
# so that the router layer controls the transaction boundary via the
# ``get_db`` dependency.
