"""Shared constants for the messages persistence layer."""

from .models import ROLE_ASSISTANT, ROLE_SYSTEM, ROLE_USER

__all__ = [
    # roles
    "ROLE_ASSISTANT",
    "ROLE_SYSTEM",
    "ROLE_USER",
    # table / columns
    "TABLE_MESSAGES",
    "COL_ID",
    "COL_CHAT_ID",
    "COL_ROLE",
    "COL_CONTENT",
    "COL_POSITION",
    # query params
    "PARAM_ID",
    "PARAM_CHAT_ID",
    "PARAM_POSITION",
    # SQL
    "SQL_SELECT_MESSAGE",
    "SQL_SELECT_HISTORY",
]

# Table and column names
TABLE_MESSAGES = "messages"
COL_ID = "id"
COL_CHAT_ID = "chat_id"
COL_ROLE = "role"
COL_CONTENT = "content"
COL_POSITION = "position"

# Query parameter names (bound in SQL as :name)
PARAM_ID = "id"
PARAM_CHAT_ID = "chat_id"
PARAM_POSITION = "position"

# SQL templates (use with sqlalchemy.text())
SQL_SELECT_MESSAGE = f"""
    SELECT {COL_ID}, {COL_CHAT_ID}, {COL_POSITION}
    FROM {TABLE_MESSAGES}
    WHERE {COL_ID} = :{PARAM_ID}
"""
SQL_SELECT_HISTORY = f"""
    SELECT {COL_ROLE}, {COL_CONTENT}
    FROM {TABLE_MESSAGES}
    WHERE {COL_CHAT_ID} = :{PARAM_CHAT_ID}
      AND {COL_POSITION} <= :{PARAM_POSITION}
    ORDER BY {COL_POSITION} ASC
"""
