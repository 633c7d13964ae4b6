"""
Storefront Service package.

An e-commerce backend for users, products, orders, coupons and admin
analytics over a document store. It provides:

- app.main: API surface and service lifecycle.
- app.caching: Typed cache keys, cache stores, invalidation and
  read-through accessors.
- app.analytics: Monthly chart bucketing, percentages, inventory share
  and dashboard aggregates.
- app.persistence: Document store interface and its PostgreSQL backend.
- app.services: Mutation handlers for each resource.

Guidelines:
- Every write goes to the document store first, then invalidates.
- Cached views are replaced, never mutated in place.
"""
