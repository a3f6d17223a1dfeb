#!/usr/bin/env python3
"""Emit deterministic PostgreSQL DDL for the portal schema, optionally seeding an admin."""

from __future__ import annotations

import argparse

import bcrypt

MAX_PASSWORD_BYTES = 72

SCHEMA_SQL = """-- Education portal schema
-- Apply with: psql "$EP_DATABASE_URL" -f schema.sql

create table if not exists admins (
    id bigserial primary key,
    username varchar(255) not null,
    password_hash varchar(255) not null,
    email varchar(255),
    created_at timestamptz not null default now(),
    updated_at timestamptz not null default now(),
    constraint admins_username_key unique (username)
);

create table if not exists jobs (
    id bigserial primary key,
    title varchar(500) not null,
    slug text not null,
    description text,
    company varchar(255) not null,
    job_type varchar(32) not null,
    post_name varchar(255),
    qualification text,
    salary varchar(255),
    last_date date not null,
    apply_link varchar(500),
    is_active boolean not null default true,
    created_at timestamptz not null default now(),
    updated_at timestamptz not null default now(),
    constraint jobs_slug_key unique (slug),
    constraint jobs_job_type_check check (job_type in ({job_types}))
);
create index if not exists jobs_job_type_idx on jobs (job_type);
create index if not exists jobs_created_at_idx on jobs (created_at desc);

create table if not exists education_news (
    id bigserial primary key,
    title varchar(500) not null,
    slug text not null,
    content text not null,
    excerpt text,
    category varchar(255) not null default 'general',
    image_path varchar(500),
    news_type varchar(64) not null default 'general',
    status varchar(64) not null default 'draft',
    exam_date date,
    important_dates text,
    tags text,
    is_active boolean not null default true,
    created_at timestamptz not null default now(),
    updated_at timestamptz not null default now(),
    constraint education_news_slug_key unique (slug)
);
create index if not exists education_news_news_type_idx on education_news (news_type);
create index if not exists education_news_created_at_idx on education_news (created_at desc);

create table if not exists notes (
    id bigserial primary key,
    title varchar(500) not null,
    slug text not null,
    subject varchar(255) not null,
    class_level varchar(32) not null,
    description text not null default '',
    author varchar(255) not null default 'Unknown',
    file_path varchar(500),
    file_name varchar(500),
    file_size bigint,
    file_type varchar(255),
    download_count integer not null default 0,
    is_active boolean not null default true,
    created_at timestamptz not null default now(),
    updated_at timestamptz not null default now(),
    constraint notes_slug_key unique (slug),
    constraint notes_class_level_check check (class_level in ({class_levels}))
);
create index if not exists notes_subject_idx on notes (subject);
create index if not exists notes_class_level_idx on notes (class_level);

create table if not exists study_materials (
    id bigserial primary key,
    post_name varchar(255) not null,
    title varchar(500) not null,
    description text,
    file_path varchar(500),
    file_name varchar(500),
    file_size bigint,
    file_type varchar(255),
    download_count integer not null default 0,
    is_active boolean not null default true,
    created_at timestamptz not null default now(),
    updated_at timestamptz not null default now()
);
create index if not exists study_materials_post_name_idx on study_materials (post_name);
"""

JOB_TYPES = ("government", "private")
CLASS_LEVELS = ("8", "9", "10", "11", "12")


def _quote_sql(value: str) -> str:
    escaped = value.replace("'", "''")
    return f"'{escaped}'"


def _quoted_list(values: tuple[str, ...]) -> str:
    return ", ".join(_quote_sql(value) for value in values)


def render_sql(
    *,
    admin_username: str | None = None,
    admin_password_hash: str | None = None,
    admin_email: str | None = None,
) -> str:
    sql = SCHEMA_SQL.format(job_types=_quoted_list(JOB_TYPES), class_levels=_quoted_list(CLASS_LEVELS))
    if not admin_username:
        return sql

    assert admin_password_hash is not None
    email_value = _quote_sql(admin_email) if admin_email else "null"
    return f"""{sql}
insert into admins (username, password_hash, email)
values ({_quote_sql(admin_username)}, {_quote_sql(admin_password_hash)}, {email_value})
on conflict (username) do nothing;
"""


def main() -> None:
    parser = argparse.ArgumentParser(description="Emit SQL to create the portal schema.")
    parser.add_argument("--admin-username", help="Seed an admin account with this username")
    parser.add_argument("--admin-password", help="Plain password for the seeded admin (hashed with bcrypt)")
    parser.add_argument("--admin-email", help="Optional email for the seeded admin")
    parser.add_argument("--rounds", type=int, default=12, help="bcrypt cost factor for the seeded admin")
    args = parser.parse_args()

    if bool(args.admin_username) != bool(args.admin_password):
        parser.error("--admin-username and --admin-password must be given together")
    if args.admin_password and len(args.admin_password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        parser.error(f"--admin-password must be at most {MAX_PASSWORD_BYTES} bytes")

    password_hash = None
    if args.admin_password:
        password_hash = bcrypt.hashpw(
            args.admin_password.encode("utf-8"),
            bcrypt.gensalt(rounds=args.rounds),
        ).decode("utf-8")

    print(
        render_sql(
            admin_username=args.admin_username,
            admin_password_hash=password_hash,
            admin_email=args.admin_email,
        )
    )


if __name__ == "__main__":
    main()
