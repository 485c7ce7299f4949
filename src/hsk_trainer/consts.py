VERSION = "0.4.0"
EXPORT_FORMAT_VERSION = "2.1.0"
