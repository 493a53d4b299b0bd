"""
bsonbridge demonstration script.
"""

import bsonbridge
from bsonbridge import ConversionConfig


def main():
    print("bsonbridge - BSON <-> Extended JSON Demo")
    print("=" * 40)

    examples = [
        # Plain JSON
        ('{"name": "Ada", "age": 36, "active": true}', "Plain JSON"),
        # Typed wrappers
        (
            """
        {
            "_id": {"$oid": "507f1f77bcf86cd799439011"},
            "views": {"$numberLong": "9223372036854775807"},
            "created": {"$date": "2024-03-01T12:30:00.250Z"},
            "price": {"$numberDecimal": "19.99"},
            "avatar": {"$binary": {"base64": "AAEC", "subType": "00"}}
        }
        """,
            "Extended JSON wrappers",
        ),
        # Large integers promote to Int64
        ('{"small": 7, "large": 3000000000}', "Integer widths"),
        # Errors report the path
        ('{"user": {"id": {"$oid": "not-hex"}}}', "Invalid wrapper payload"),
        # Duplicate keys
        ('{"test": "value1", "test": "value2"}', "Duplicate keys (default behavior)"),
    ]

    for i, (json_str, description) in enumerate(examples, 1):
        print(f"\n{i}. {description}")
        print(f"Input:  {json_str.strip()}")

        result = bsonbridge.json_to_bson(json_str)
        if not result.ok:
            print(f"Error:  {result.error}")
            continue
        print(f"BSON:   {result.value.hex()}")
        print(f"Back:   {bsonbridge.bson_to_json(result.value, ConversionConfig(indent=None)).unwrap()}")

    # Canonical output keeps every numeric type explicit
    print(f"\n{len(examples) + 1}. Canonical mode")
    data = bsonbridge.encode(bsonbridge.document(n=5, x=1.5))
    print(bsonbridge.bson_to_json(data, ConversionConfig.canonical()).unwrap())

    print(f"\n{len(examples) + 2}. Duplicate keys (strict mode)")
    result = bsonbridge.json_to_bson(
        '{"test": "value1", "test": "value2"}', ConversionConfig.strict()
    )
    print(f"Error:  {result.error}")


if __name__ == "__main__":
    main()
