from urllib.parse import parse_qs, urlparse

from shipping_quotes.infrastructure.auth.oauth import ShopifyOAuthHandler

REDIRECT = "https://app.example.com/auth/callback"


def issue_state(handler: ShopifyOAuthHandler, shop: str) -> str:
    url = handler.build_authorization_url(shop, redirect_uri=REDIRECT)
    return parse_qs(urlparse(url).query)["state"][0]


def test_state_matches_only_for_its_shop(fake_clock):
    handler = ShopifyOAuthHandler("key", "secret", clock=fake_clock)
    state = issue_state(handler, "loja.myshopify.com")

    assert handler.state_matches("loja.myshopify.com", state)
    assert not handler.state_matches("outra.myshopify.com", state)
    assert not handler.state_matches("loja.myshopify.com", "other")


def test_state_expires(fake_clock):
    handler = ShopifyOAuthHandler("key", "secret", state_ttl=600, clock=fake_clock)
    state = issue_state(handler, "loja.myshopify.com")

    fake_clock.advance(600)

    assert not handler.state_matches("loja.myshopify.com", state)
    assert handler.pending == 0


def test_pending_states_are_bounded(fake_clock):
    handler = ShopifyOAuthHandler("key", "secret", max_pending=3, clock=fake_clock)
    first = issue_state(handler, "shop-0.myshopify.com")
    for i in range(1, 50):
        fake_clock.advance(1)
        issue_state(handler, f"shop-{i}.myshopify.com")

    assert handler.pending == 3
    assert not handler.state_matches("shop-0.myshopify.com", first)


def test_expired_states_are_dropped_on_new_installs(fake_clock):
    handler = ShopifyOAuthHandler("key", "secret", state_ttl=60, clock=fake_clock)
    for i in range(10):
        issue_state(handler, f"shop-{i}.myshopify.com")

    fake_clock.advance(60)
    issue_state(handler, "late.myshopify.com")

    assert handler.pending == 1


def test_reinstall_replaces_previous_state(fake_clock):
    handler = ShopifyOAuthHandler("key", "secret", clock=fake_clock)
    old = issue_state(handler, "loja.myshopify.com")
    new = issue_state(handler, "loja.myshopify.com")

    assert handler.pending == 1
    assert handler.state_matches("loja.myshopify.com", new)
    assert old == new or not handler.state_matches("loja.myshopify.com", old)
