"""
Mutation handlers. Each write invalidates the cache groups it affects.
"""
