import pytest

from settlement.modules.common.enums import BuyerRole
from settlement.modules.ledger import LedgerService
from settlement.modules.pricing import (
    BuyerContext,
    LineRequest,
    PriceResolver,
    PriceSource,
    PriceUnavailableError,
    ProductNotFoundError,
)


class TestPriceResolution:
    async def test_guest_pays_admin_base_without_margin(self, session, bundle):
        """A guest buying a 1GB bundle pays the 3.00 admin base; nobody earns a margin."""
        priced = await PriceResolver.with_session(session).resolve_lines(
            [LineRequest(phone="0241234567", product_id=bundle.id)], BuyerContext.guest()
        )

        assert priced.amount_minor == 300
        assert priced.agent_profit_minor == 0
        assert priced.platform_revenue_minor == 300
        assert priced.lines[0].quote.source is PriceSource.ADMIN_BASE

    async def test_reseller_custom_price_earns_the_difference(self, database, bundle, seed):
        """Custom 3.50 over a 3.00 base: amount 3.50, agent 0.50, platform 3.00."""
        agent = await seed.reseller("agent-1")
        await seed.custom_price(bundle.id, agent, 350)

        async with database.session() as session:
            priced = await PriceResolver.with_session(session).resolve_lines(
                [LineRequest(phone="0241234567", product_id=bundle.id)], agent
            )

        assert priced.amount_minor == 350
        assert priced.agent_profit_minor == 50
        assert priced.platform_revenue_minor == 300
        LedgerService.with_session(session).assert_split(
            priced.amount_minor, priced.agent_profit_minor, priced.platform_revenue_minor
        )

    async def test_role_base_takes_precedence_over_admin_base(self, database, bundle, seed):
        dealer = await seed.reseller("dealer-1", role=BuyerRole.DEALER)
        await seed.role_price(bundle.id, BuyerRole.DEALER, 260)

        async with database.session() as session:
            quote = await PriceResolver.with_session(session).resolve(bundle.id, dealer)

        assert quote.unit_price_minor == 260
        assert quote.base_cost_minor == 260
        assert quote.source is PriceSource.ROLE_BASE
        assert quote.margin_minor == 0

    async def test_role_base_for_another_role_is_ignored(self, database, bundle, seed):
        agent = await seed.reseller("agent-2")
        await seed.role_price(bundle.id, BuyerRole.MASTER, 200)

        async with database.session() as session:
            quote = await PriceResolver.with_session(session).resolve(bundle.id, agent)

        assert quote.unit_price_minor == 300
        assert quote.source is PriceSource.ADMIN_BASE

    async def test_falls_back_to_catalog_price_without_admin_base(self, database, checker):
        async with database.session() as session:
            quote = await PriceResolver.with_session(session).resolve(checker.id, BuyerContext.guest())

        assert quote.unit_price_minor == 1500
        assert quote.source is PriceSource.PRODUCT_BASE

    async def test_unapproved_reseller_prices_as_guest(self, database, bundle, seed):
        pending = await seed.reseller("agent-3", approved=False)
        await seed.custom_price(bundle.id, pending, 400)

        async with database.session() as session:
            quote = await PriceResolver.with_session(session).resolve(bundle.id, pending)

        assert quote.unit_price_minor == 300
        assert quote.margin_minor == 0

    async def test_custom_price_below_base_clamps_margin_to_zero(self, database, bundle, seed):
        agent = await seed.reseller("agent-4")
        await seed.custom_price(bundle.id, agent, 250)

        async with database.session() as session:
            priced = await PriceResolver.with_session(session).resolve_lines(
                [LineRequest(phone="0241234567", product_id=bundle.id, quantity=2)], agent
            )

        assert priced.amount_minor == 500
        assert priced.agent_profit_minor == 0
        assert priced.platform_revenue_minor == 500

    async def test_custom_price_keeps_its_value_after_base_changes(self, database, bundle, seed):
        """Raising the base later changes the margin, never the reseller's selling price."""
        agent = await seed.reseller("agent-5")
        await seed.custom_price(bundle.id, agent, 350)

        async with database.session() as session:
            await PriceResolver.with_session(session).set_admin_base_price(bundle.id, 320)

        async with database.session() as session:
            quote = await PriceResolver.with_session(session).resolve(bundle.id, agent)

        assert quote.unit_price_minor == 350
        assert quote.margin_minor == 30

    async def test_unknown_product_is_rejected(self, session):
        with pytest.raises(ProductNotFoundError):
            await PriceResolver.with_session(session).resolve("missing", BuyerContext.guest())

    async def test_product_without_any_price_is_unavailable(self, database):
        from settlement.db.models import Product
        from settlement.modules.common.enums import ProductType

        async with database.session() as session:
            product = Product(product_type=ProductType.DATA_BUNDLE, name="Unpriced", network="mtn", is_active=True)
            session.add(product)

        async with database.session() as session:
            with pytest.raises(PriceUnavailableError):
                await PriceResolver.with_session(session).resolve(product.id, BuyerContext.guest())


class TestBuyerContext:
    async def test_reseller_principal_gets_storefront(self, database, seed):
        agent = await seed.reseller("agent-6")

        async with database.session() as session:
            context = await PriceResolver.with_session(session).buyer_context("agent-6", BuyerRole.AGENT)

        assert context.reseller_id == agent.reseller_id
        assert context.prices_as_reseller

    async def test_plain_user_has_no_storefront(self, session):
        context = await PriceResolver.with_session(session).buyer_context("user-1", BuyerRole.USER)

        assert context.reseller_id is None
        assert not context.prices_as_reseller

    async def test_missing_user_is_a_guest(self, session):
        context = await PriceResolver.with_session(session).buyer_context(None, BuyerRole.USER)

        assert context.is_guest
