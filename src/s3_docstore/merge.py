from s3_docstore.errors import ValidationError

import copy


DEEP = "deep"
SHALLOW = "shallow"
REPLACE = "replace"
STRATEGIES = (DEEP, SHALLOW, REPLACE)


def deep_merge(existing, partial):
    """Merge mappings key by key; lists and scalars from partial win."""
    result = copy.deepcopy(existing)
    for name, value in partial.items():
        current = result.get(name)
        if isinstance(current, dict) and isinstance(value, dict):
            result[name] = deep_merge(current, value)
        else:
            result[name] = copy.deepcopy(value)
    return result


def merge_documents(existing, partial, key, strategy=DEEP):
    """Combine a partial document with the stored one.

    Identity attributes always come from the key.
    """
    if strategy == DEEP:
        merged = deep_merge(existing, partial)
    elif strategy == SHALLOW:
        merged = copy.deepcopy(existing)
        merged.update(copy.deepcopy(partial))
    elif strategy == REPLACE:
        merged = copy.deepcopy(partial)
    else:
        raise ValidationError(
            f"Invalid merge strategy {strategy!r}, "
            f"expected one of {', '.join(STRATEGIES)}"
        )
    merged.update(key.identity())
    return merged
