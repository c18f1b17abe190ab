"""
shared — Building blocks used by both document models.

Sub-modules:
    named_value  — valueName/value pairs and their lookups
    timestamp    — RFC 3339 wire timestamps
    xml_utils    — dataclass ⇄ ElementTree mapping
"""
