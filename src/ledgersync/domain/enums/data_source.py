from enum import Enum


class DataSource(str, Enum):
    CEX_API = "CEX_API"
    CSV_IMPORT = "CSV_IMPORT"
