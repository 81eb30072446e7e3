# wms_putaway/schemas/__init__.py
"""
Schemas package

不做聚合导出；需要时显式从具体模块导入，例如：
    from wms_putaway.schemas.putaway import PutawayIn, PutawayOut
"""

__all__: list[str] = []
