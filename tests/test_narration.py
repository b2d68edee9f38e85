import random

from src.audio.narration import TEMPLATES, NarrationScriptGenerator


class FixedChoice:
    def __init__(self, index):
        self.index = index

    def randrange(self, n):
        return self.index


def test_same_seed_same_script(product):
    a = NarrationScriptGenerator(rng=random.Random(42)).generate(product)
    b = NarrationScriptGenerator(rng=random.Random(42)).generate(product)
    assert a == b


def test_every_template_mentions_title_and_price(product):
    for i in range(len(TEMPLATES)):
        script = NarrationScriptGenerator(rng=FixedChoice(i)).generate(product)
        assert script.template_index == i
        assert product.title in script.text
        assert "R$ 297.00" in script.text


def test_discount_template_quotes_inflated_original_price(product):
    script = NarrationScriptGenerator(rng=FixedChoice(1)).generate(product)
    assert "R$ 445.50" in script.text


def test_templates_are_all_reachable(product):
    gen = NarrationScriptGenerator(rng=random.Random(0))
    seen = {gen.generate(product).template_index for _ in range(200)}
    assert seen == {0, 1, 2}
