from specgen.markers import data_driven, feature, given, inline_data, scenario, then, when


@feature("Shopping")
class ShoppingFeature:
    pass


@feature("")
class NamelessFeature:
    pass


@scenario("Checkout")
class Checkout(ShoppingFeature):
    @given("a basket with {0} items", 2, priority=1)
    def test_basket(self):
        pass

    @when("I pay by card", priority=2)
    def test_card(self):
        pass

    @when("I confirm the order", priority=2)
    def test_confirm(self):
        pass

    @data_driven("line {0} costs {1}", priority=3)
    @inline_data(1, "9.99")
    @inline_data(2, "0.50")
    def test_lines(self, line, cost):
        pass

    @data_driven("the order is {0}", keyword="Whenever", priority=4)
    def test_bad_keyword(self):
        pass


@scenario("")
class Untitled(ShoppingFeature):
    @given("never rendered")
    def test_never(self):
        pass


@scenario("Lonely")
class Lonely:
    @given("nobody owns this scenario")
    def test_lonely(self):
        pass


class StepsWithoutScenario(ShoppingFeature):
    @then("this step has no scenario")
    def test_orphan(self):
        pass
