from .csv_export import (
    export_table_csv,
    export_tables_csv,
    export_tables_json,
    table_to_dict,
)
from .overlay import DEFAULT_COLORS, draw_table_overlay
