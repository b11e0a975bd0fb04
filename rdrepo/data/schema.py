"""SQLite DDL for repository persistence.

Defines the schema for datasets, their versions, files, file
associations, dataset types and role assignments. Used by
SQLiteDatabase to ensure tables exist on first access.
"""

SCHEMA_DDL = """
CREATE TABLE IF NOT EXISTS dataset_types (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    name          TEXT NOT NULL UNIQUE
);

CREATE TABLE IF NOT EXISTS datasets (
    id                    INTEGER PRIMARY KEY AUTOINCREMENT,
    protocol              TEXT NOT NULL,
    authority             TEXT NOT NULL,
    identifier            TEXT NOT NULL,
    storage_identifier    TEXT NOT NULL,
    dataset_type          TEXT NOT NULL REFERENCES dataset_types(name),
    owner                 TEXT NOT NULL DEFAULT 'root',
    harvested_from        TEXT,
    identifier_registered INTEGER NOT NULL DEFAULT 0,
    global_id_create_time TEXT,
    creator               TEXT NOT NULL,
    create_date           TEXT NOT NULL,
    modification_time     TEXT NOT NULL,
    UNIQUE(protocol, authority, identifier)
);

CREATE TABLE IF NOT EXISTS datafiles (
    id                 INTEGER PRIMARY KEY AUTOINCREMENT,
    dataset_id         INTEGER NOT NULL REFERENCES datasets(id),
    label              TEXT NOT NULL DEFAULT '',
    content_type       TEXT NOT NULL DEFAULT 'application/octet-stream',
    checksum           TEXT NOT NULL DEFAULT '',
    checksum_type      TEXT NOT NULL DEFAULT 'MD5',
    filesize           INTEGER NOT NULL DEFAULT 0,
    storage_identifier TEXT,
    creator            TEXT NOT NULL,
    create_date        TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS datasetversions (
    id                   INTEGER PRIMARY KEY AUTOINCREMENT,
    dataset_id           INTEGER NOT NULL REFERENCES datasets(id),
    version_state        TEXT NOT NULL DEFAULT 'DRAFT',
    version_number       INTEGER,
    minor_version_number INTEGER,
    metadata             TEXT NOT NULL DEFAULT '{}',
    terms_of_use         TEXT,
    create_time          TEXT,
    last_update_time     TEXT
);

CREATE TABLE IF NOT EXISTS filemetadatas (
    id                 INTEGER PRIMARY KEY AUTOINCREMENT,
    datasetversion_id  INTEGER NOT NULL REFERENCES datasetversions(id),
    datafile_id        INTEGER NOT NULL REFERENCES datafiles(id),
    label              TEXT NOT NULL DEFAULT '',
    directory_label    TEXT NOT NULL DEFAULT '',
    description        TEXT NOT NULL DEFAULT ''
);

CREATE TABLE IF NOT EXISTS role_assignments (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    dataset_id    INTEGER NOT NULL REFERENCES datasets(id),
    assignee      TEXT NOT NULL,
    role          TEXT NOT NULL,
    UNIQUE(dataset_id, assignee, role)
);

CREATE INDEX IF NOT EXISTS idx_datafiles_dataset
    ON datafiles(dataset_id);
CREATE INDEX IF NOT EXISTS idx_datasetversions_dataset
    ON datasetversions(dataset_id);
CREATE INDEX IF NOT EXISTS idx_filemetadatas_version
    ON filemetadatas(datasetversion_id);
"""
