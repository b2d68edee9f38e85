import random
from typing import Callable, List, Optional

from src.core.models import NarrationScript, Product
from src.render.layout import format_price


def _discover(product: Product) -> str:
    return (
        f"Descubra {product.title}! Por apenas {format_price(product.price)}, "
        f"você pode transformar sua vida. Não perca essa oportunidade única!"
    )


def _discount(product: Product) -> str:
    original = float(product.price) * 1.5
    return (
        f"{product.title} está com desconto especial! De {format_price(original)} "
        f"por apenas {format_price(product.price)}. Clique no link agora!"
    )


def _question(product: Product) -> str:
    return (
        f"Você está procurando {product.title}? Esta é sua chance de conseguir "
        f"por um preço incrível: {format_price(product.price)}. Acesse já!"
    )


TEMPLATES: List[Callable[[Product], str]] = [_discover, _discount, _question]


class NarrationScriptGenerator:
    """Picks one promotional template uniformly at random and fills it in."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def generate(self, product: Product) -> NarrationScript:
        index = self.rng.randrange(len(TEMPLATES))
        return NarrationScript(text=TEMPLATES[index](product), template_index=index)
