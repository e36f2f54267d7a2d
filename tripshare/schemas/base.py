# tripshare/schemas/base.py
from pydantic import ConfigDict
from pydantic.alias_generators import to_camel


class _ModelCfgMixin:
    """
    Common config: documents are stored snake_case, the API speaks camelCase.
    Either spelling is accepted on input.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,   # allow source=snake_case, output=camelCase
        from_attributes=True,    # let asyncpg.Record / dicts map in
    )
