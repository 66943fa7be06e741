"""SQL statements to be used in testing sqlite implementations."""

CREATE_TABLE = """CREATE TABLE all_the_things (
    pk_col      TEXT,
    col_integer INTEGER,
    col_bigint  INTEGER,
    col_text    TEXT,
    col_real    REAL
);
"""

SIMPLE_INSERT = "INSERT INTO all_the_things (pk_col, col_text, col_bigint, col_integer) VALUES(?, ?, ?, ?)"

SIMPLE_SELECT = """SELECT pk_col as my_pk_col, col_text as some_uuid, col_bigint, col_integer
FROM all_the_things
WHERE col_bigint > ?;
"""

COUNT_ALL = "SELECT count(*) FROM all_the_things"

CREATE_USERS = """CREATE TABLE users (
    id   INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT,
    age  INTEGER NOT NULL
);
"""

SLOW_COUNT = """WITH RECURSIVE counter(x) AS (
    SELECT 1
    UNION ALL
    SELECT x + 1 FROM counter WHERE x < 1000000000
)
SELECT count(*) FROM counter;
"""
