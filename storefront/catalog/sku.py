"""SKU generation.

SKUs look like ``RED-1-4K9Z0QPA``: a three letter name prefix, the shop
id and eight random characters. Uniqueness is probabilistic; there is no
collision retry, and a clash surfaces as a unique-constraint
ValidationError from the repository.
"""

import re
import secrets
import string

SKU_ALPHABET = string.digits + string.ascii_uppercase
SKU_RANDOM_LENGTH = 8

_NON_LETTER = re.compile(r"[^A-Z]")


def sku_prefix(product_name: str) -> str:
    """First three characters of the name, uppercased, non A-Z replaced by X."""
    return _NON_LETTER.sub("X", product_name[:3].upper())


def generate_sku(product_name: str, shop_id: int) -> str:
    """Generate a SKU for a product.

    Args:
        product_name: Product name.
        shop_id: Shop the product is listed in.

    Returns:
        SKU string.
    """
    suffix = "".join(secrets.choice(SKU_ALPHABET) for _ in range(SKU_RANDOM_LENGTH))
    return f"{sku_prefix(product_name)}-{shop_id}-{suffix}"
