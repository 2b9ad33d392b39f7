"""dbbridge — Several database backends behind one tool/resource surface.

Architecture layers (bottom to top):
    1. Docstore  — MongoDB shell/JSON query translation (tokenizer, shell
                   parser, normalizer, dispatcher, facade)
    2. Backends  — SQLite, PostgreSQL, SQL Server (SQLAlchemy) and MongoDB
                   (Motor) behind the ``BaseDatabase`` contract
    3. Gateway   — Named connections and the tool/resource operations
    4. API/CLI   — FastAPI HTTP transport and the ``dbbridge`` command
"""

__version__ = "0.1.0"
__author__ = "dbbridge Contributors"
__license__ = "Apache-2.0"

from dbbridge.docstore import translate_read, translate_write

__all__ = [
    "__version__",
    "translate_read",
    "translate_write",
]
