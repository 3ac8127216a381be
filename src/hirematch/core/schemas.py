"""对外 JSON 模型基类：Python 侧 snake_case，序列化为 camelCase，可直接从 ORM 对象构造。"""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)
