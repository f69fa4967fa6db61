#import modeli zeby SQLAlchemy zarejestrowal je w Base.metadata

from storefront.data.models.local_cart_item import LocalCartItemModel

__all__ = ["LocalCartItemModel"]
