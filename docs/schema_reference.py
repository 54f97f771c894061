"""
Database Schema Reference
=========================

This file provides a quick reference for all database tables and columns.
For actual SQLAlchemy models, see: src/db/models.py

"""

# ============================================================================
# PROJECTS - Localized codebases and their import settings
# ============================================================================
#
# | Column                   | Type          | Constraints                  |
# |--------------------------|---------------|------------------------------|
# | id                       | UUID          | PRIMARY KEY                  |
# | name                     | VARCHAR(256)  | NOT NULL, UNIQUE             |
# | repository_url           | TEXT          | NULLABLE (no imports if so)  |
# | base_rfc5646_locale      | VARCHAR(20)   | NOT NULL, DEFAULT 'en'       |
# | targeted_rfc5646_locales | JSON          | {"fr": true, "ja": false}    |
# | skip_imports             | JSON          | parser idents disabled       |
# | key_exclusions           | JSON          | key glob patterns            |
# | created_at               | TIMESTAMP(TZ) | NOT NULL, DEFAULT now()      |
#
# Relationships:
#   - blobs, keys, revisions: ONE-TO-MANY (ON DELETE CASCADE)


# ============================================================================
# BLOBS - One file's content at one path
# ============================================================================
#
# | Column     | Type          | Constraints                                |
# |------------|---------------|--------------------------------------------|
# | id         | UUID          | PRIMARY KEY                                |
# | project_id | UUID          | NOT NULL, FK(projects.id), INDEX           |
# | path       | VARCHAR(1024) | NOT NULL                                   |
# | sha        | VARCHAR(64)   | NOT NULL (git blob sha)                    |
# | parsed     | BOOLEAN       | NOT NULL, DEFAULT FALSE                    |
# | created_at | TIMESTAMP(TZ) | NOT NULL, DEFAULT now()                    |
#
# Unique: (project_id, path, sha). The same content at two paths is two blobs.


# ============================================================================
# REVISIONS - Tracked commits
# ============================================================================
#
# | Column             | Type          | Constraints                        |
# |--------------------|---------------|------------------------------------|
# | id                 | UUID          | PRIMARY KEY                        |
# | project_id         | UUID          | NOT NULL, FK(projects.id), INDEX   |
# | sha                | VARCHAR(64)   | NOT NULL                           |
# | message            | VARCHAR(256)  | truncated, overflow ends in "..."  |
# | author             | VARCHAR(256)  | NULLABLE                           |
# | author_email       | VARCHAR(256)  | NULLABLE                           |
# | requested_by_email | VARCHAR(256)  | NULLABLE                           |
# | committed_at       | TIMESTAMP(TZ) | NULLABLE                           |
# | loading            | BOOLEAN       | NOT NULL, DEFAULT FALSE            |
# | ready              | BOOLEAN       | NOT NULL, DEFAULT FALSE, INDEX     |
# | import_errors      | JSON          | [[error_kind, location], ...]      |
# | created_at         | TIMESTAMP(TZ) | NOT NULL, DEFAULT now()            |
# | loaded_at          | TIMESTAMP(TZ) | NULLABLE (NULL = never imported)   |
# | approved_at        | TIMESTAMP(TZ) | NULLABLE (last transition to ready)|
#
# Unique: (project_id, sha)


# ============================================================================
# KEYS - Translatable units
# ============================================================================
#
# | Column       | Type          | Constraints                              |
# |--------------|---------------|------------------------------------------|
# | id           | UUID          | PRIMARY KEY                              |
# | project_id   | UUID          | NOT NULL, FK(projects.id), INDEX         |
# | fingerprint  | VARCHAR(64)   | sha256(key, source_copy, context)        |
# | key          | TEXT          | NOT NULL (scoped identifier)             |
# | original_key | TEXT          | NOT NULL (matched by exclusion globs)    |
# | source_copy  | TEXT          | NOT NULL                                 |
# | context      | TEXT          | NULLABLE                                 |
# | importer     | VARCHAR(32)   | parser ident, INDEX                      |
# | source       | VARCHAR(1024) | path the key was found in                |
# | other_data   | JSON          | NULLABLE                                 |
# | ready        | BOOLEAN       | NOT NULL, DEFAULT TRUE                   |
# | created_at   | TIMESTAMP(TZ) | NOT NULL, DEFAULT now()                  |
#
# Unique: (project_id, fingerprint)


# ============================================================================
# TRANSLATIONS - One locale's rendering of a key
# ============================================================================
#
# | Column                | Type          | Constraints                     |
# |-----------------------|---------------|---------------------------------|
# | id                    | UUID          | PRIMARY KEY                     |
# | key_id                | UUID          | NOT NULL, FK(keys.id), INDEX    |
# | source_rfc5646_locale | VARCHAR(20)   | NOT NULL                        |
# | rfc5646_locale        | VARCHAR(20)   | NOT NULL                        |
# | source_copy           | TEXT          | NULLABLE                        |
# | copy                  | TEXT          | NULLABLE (NULL = untranslated)  |
# | notes                 | TEXT          | NULLABLE                        |
# | created_at            | TIMESTAMP(TZ) | NOT NULL, DEFAULT now()         |
# | updated_at            | TIMESTAMP(TZ) | NULLABLE                        |
#
# Unique: (key_id, rfc5646_locale)


# ============================================================================
# REVISIONS_KEYS / REVISIONS_BLOBS - Many-to-many associations
# ============================================================================
#
# (revision_id, key_id) and (revision_id, blob_id), composite primary keys,
# both sides ON DELETE CASCADE. Deleting a revision removes only these rows.


# ============================================================================
# ER DIAGRAM (Text)
# ============================================================================
#
#                    ┌──────────────┐
#                    │   projects   │
#                    └──────┬───────┘
#            1:N ┌──────────┼───────────┐ 1:N
#                ▼          ▼ 1:N       ▼
#         ┌──────────┐ ┌───────────┐ ┌──────────┐
#         │  blobs   │ │ revisions │ │   keys   │
#         └────┬─────┘ └─┬───────┬─┘ └──┬────┬──┘
#              │   N:M   │       │ N:M  │    │ 1:N
#              └─────────┘       └──────┘    ▼
#          revisions_blobs   revisions_keys ┌──────────────┐
#                                           │ translations │
#                                           └──────────────┘
