import factory
from catalog.models import Product, ProductVariant
from factory import Faker
from factory.django import DjangoModelFactory


class ProductFactory(DjangoModelFactory):
    class Meta:
        model = Product

    title = Faker("sentence", nb_words=3)
    slug = factory.Sequence(lambda n: f"product-{n}")
    low_stock_threshold = None
    is_discontinued = False
    allows_backorder = False


class ProductVariantFactory(DjangoModelFactory):
    class Meta:
        model = ProductVariant

    product = factory.SubFactory(ProductFactory)
    sku = factory.Sequence(lambda n: f"SKU-{n:04d}")
    price = factory.Faker("pydecimal", left_digits=3, right_digits=2, positive=True)
    status = ProductVariant.STATUS_ACTIVE
