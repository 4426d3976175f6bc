from . import load_config, registration
