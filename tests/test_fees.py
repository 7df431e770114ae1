"""Tests for pricing resolution and fee calculation."""

import pytest
from decimal import Decimal

from membership_sdk.database.models import MembershipStatus
from membership_sdk.exceptions import ConfigurationError, PricingNotFoundError
from membership_sdk.reconciliation import FeeCalculator, PricingResolver, quantize_money

from conftest import make_member, make_season


class TestPricingResolver:
    """Tests for PricingResolver."""

    def test_resolves_membership_fee_and_discount(self, season):
        """Test the season's base fee and discount are returned as-is."""
        resolver = PricingResolver()

        assert resolver.resolve_membership_fee(season) == Decimal("100")
        assert resolver.resolve_discount_percent(season) == Decimal("20")

    def test_missing_season(self):
        """Test a missing season is a configuration error."""
        with pytest.raises(ConfigurationError) as exc_info:
            PricingResolver().resolve_membership_fee(None)

        assert exc_info.value.field_name == "season"

    def test_negative_membership_fee(self):
        """Test a negative membership fee is rejected."""
        season = make_season(membership_amount="-1")

        with pytest.raises(ConfigurationError) as exc_info:
            PricingResolver().validate_season(season)

        assert exc_info.value.field_name == "membership_amount"
        assert exc_info.value.code == "CONFIGURATION_ERROR"

    @pytest.mark.parametrize("percent", ["-5", "100.01", "150"])
    def test_discount_out_of_range(self, percent):
        """Test discounts outside 0-100 are rejected."""
        season = make_season(discount_percent=percent)

        with pytest.raises(ConfigurationError):
            PricingResolver().resolve_discount_percent(season)

    @pytest.mark.parametrize("percent", ["0", "100"])
    def test_discount_bounds_are_valid(self, percent):
        """Test 0% and 100% are both accepted."""
        season = make_season(discount_percent=percent)

        assert PricingResolver().resolve_discount_percent(season) == Decimal(percent)

    def test_workshop_price_lookup(self, season):
        """Test a priced workshop resolves to its season price."""
        assert PricingResolver().resolve_workshop_fee(season, 1) == Decimal("50")

    def test_unpriced_workshop(self, season):
        """Test an unpriced workshop raises PricingNotFoundError with context."""
        with pytest.raises(PricingNotFoundError) as exc_info:
            PricingResolver().resolve_workshop_fee(season, 99)

        assert exc_info.value.workshop_id == 99
        assert exc_info.value.season_id == season.id
        assert exc_info.value.code == "PRICING_NOT_FOUND"


class TestFeeCalculator:
    """Tests for FeeCalculator."""

    def test_sibling_discount_applies_from_second_member(self, season, three_members):
        """Test a 100.00 fee with 20% discount gives 100, 80, 80."""
        breakdown = FeeCalculator().calculate(three_members, season)

        assert [f.net for f in breakdown.member_fees] == [
            Decimal("100"), Decimal("80.00"), Decimal("80.00")
        ]
        assert [f.family_order for f in breakdown.member_fees] == [1, 2, 3]
        assert breakdown.total_discount == Decimal("40.00")
        assert breakdown.total_due == Decimal("260.00")

    def test_ordering_is_by_member_id(self, season):
        """Test the full fee goes to the lowest member id regardless of input order."""
        members = [
            make_member(7, status=MembershipStatus.PENDING),
            make_member(3, status=MembershipStatus.PENDING),
        ]

        breakdown = FeeCalculator().calculate(members, season)

        assert [f.member_id for f in breakdown.member_fees] == [3, 7]
        assert breakdown.member_fees[0].discount_amount == Decimal("0")
        assert breakdown.member_fees[1].discount_amount == Decimal("20.00")

    def test_workshop_fees_are_not_discounted(self, season):
        """Test workshop fees are added at full price times quantity."""
        members = [
            make_member(1, workshops={1: 1}),
            make_member(2, workshops={1: 1, 2: 3}),
        ]

        breakdown = FeeCalculator().calculate(members, season)

        first, second = breakdown.member_fees
        assert first.workshop_fees == Decimal("50")
        assert first.net == Decimal("150")
        assert second.workshop_fees == Decimal("140")
        assert second.net == Decimal("220.00")
        assert breakdown.total_gross == Decimal("390")

    def test_registrations_of_other_seasons_are_ignored(self, season):
        """Test only registrations of the reconciled season are priced."""
        member = make_member(1, season_id=2, workshops={99: 1}, status=MembershipStatus.ACTIVE)

        breakdown = FeeCalculator().calculate([member], season)

        assert breakdown.member_fees[0].workshop_fees == Decimal("0")

    def test_unpriced_workshop_aborts(self, season):
        """Test a registration to an unpriced workshop aborts the calculation."""
        members = [make_member(1, workshops={99: 1})]

        with pytest.raises(PricingNotFoundError):
            FeeCalculator().calculate(members, season)

    def test_donation_reduces_due(self, season, three_members):
        """Test donation credit is subtracted from the family due."""
        breakdown = FeeCalculator().calculate(three_members, season, Decimal("60"))

        assert breakdown.donation_applied == Decimal("60")
        assert breakdown.total_due == Decimal("200.00")

    def test_donation_floor_is_zero(self, season, three_members):
        """Test donations above the net due give a due of exactly zero."""
        breakdown = FeeCalculator().calculate(three_members, season, Decimal("1000"))

        assert breakdown.total_due == Decimal("0")
        assert breakdown.donation_applied == breakdown.total_net

    def test_no_members(self, season):
        """Test an empty member list owes nothing."""
        breakdown = FeeCalculator().calculate([], season)

        assert breakdown.member_fees == []
        assert breakdown.total_due == Decimal("0")

    def test_discount_rounding(self):
        """Test the sibling discount is rounded half-up to the cent."""
        season = make_season(membership_amount="33.33", discount_percent="15")
        members = [make_member(1), make_member(2)]

        breakdown = FeeCalculator().calculate(members, season)

        # 33.33 * 15% = 4.9995
        assert breakdown.member_fees[1].discount_amount == Decimal("5.00")
        assert quantize_money(Decimal("4.994")) == Decimal("4.99")
