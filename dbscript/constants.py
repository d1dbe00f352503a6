DEFAULT_CONFIG_FILE = "dbscript.config.yml"

# SQLAlchemy dialect+driver used when an environment gives MySQL fields
# instead of a full `url`
DEFAULT_DRIVER = "mysql+mysqlconnector"

SCRIPT_ENCODING = "utf-8"
