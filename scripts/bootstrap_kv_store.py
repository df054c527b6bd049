#!/usr/bin/env python3
"""Emit deterministic SQL for the KV store table backing the API."""

from __future__ import annotations

import argparse
import re

TABLE_NAME_RE = re.compile(r"^[a-z_][a-z0-9_]{0,62}$")


def render_sql(*, table_name: str, service_role: str | None) -> str:
    if not TABLE_NAME_RE.match(table_name):
        raise ValueError(f"invalid table name: {table_name!r}")

    grant = ""
    if service_role:
        if not TABLE_NAME_RE.match(service_role):
            raise ValueError(f"invalid role name: {service_role!r}")
        grant = f"\ngrant select, insert, update, delete on {table_name} to {service_role};\n"

    return f"""-- KV store bootstrap SQL
-- Run this in the Supabase SQL editor (or equivalent privileged Postgres session).

create table if not exists {table_name} (
  key text not null primary key,
  value jsonb not null
);

create index if not exists {table_name}_key_prefix_idx on {table_name} (key text_pattern_ops);
{grant}"""


def main() -> None:
    parser = argparse.ArgumentParser(description="Emit SQL to create the API key-value table.")
    parser.add_argument(
        "--table",
        default="kv_store_d6e2fa79",
        help="Table name; must match EG_KV_TABLE_NAME",
    )
    parser.add_argument(
        "--grant-to",
        default=None,
        help="Optional database role to grant read/write access to",
    )
    args = parser.parse_args()

    try:
        print(render_sql(table_name=args.table, service_role=args.grant_to), end="")
    except ValueError as exc:
        parser.error(str(exc))


if __name__ == "__main__":
    main()
