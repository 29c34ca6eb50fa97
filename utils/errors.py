class MiningError(Exception):
    """Base class for expected, user-recoverable domain conditions."""

    status_code = 400
    code = 'mining_error'

    def __init__(self, message=None, **context):
        super().__init__(message or self.default_message())
        self.message = message or self.default_message()
        self.context = context

    def default_message(self):
        return 'Mining request failed'

    def to_dict(self):
        payload = {'error': self.code, 'message': self.message}
        payload.update(self.context)
        return payload


class WalletNotRegistered(MiningError):
    status_code = 404
    code = 'wallet_not_registered'

    def __init__(self, wallet):
        super().__init__(f'Wallet {wallet} is not registered', wallet=wallet)


class ActiveSessionExists(MiningError):
    status_code = 409
    code = 'active_session_exists'

    def __init__(self, wallet, status=None):
        super().__init__(
            'A mining session is already in progress',
            wallet=wallet,
            status=status,
        )


class NotMining(MiningError):
    code = 'not_mining'

    def __init__(self, wallet, status=None):
        super().__init__('Wallet has no session currently mining', wallet=wallet, status=status)


class NonSequential(MiningError):
    code = 'non_sequential_upgrade'

    def __init__(self, current, requested):
        super().__init__(
            f'You can only upgrade from {current}× to {current + 1}×',
            currentMultiplier=current,
            requestedMultiplier=requested,
            allowedMultiplier=current + 1,
        )


class MaxMultiplierReached(MiningError):
    code = 'max_multiplier_reached'

    def __init__(self, requested, maximum):
        super().__init__(
            f'Maximum multiplier is {maximum}×',
            requestedMultiplier=requested,
            maxMultiplier=maximum,
        )


class NotReadyToClaim(MiningError):
    code = 'not_ready_to_claim'

    def __init__(self, wallet, status=None):
        super().__init__('No rewards to claim', wallet=wallet, status=status)


class AlreadyUsedReferral(MiningError):
    status_code = 409
    code = 'referral_already_used'

    def __init__(self, wallet, referrer=None):
        super().__init__(
            'You have already used a referral code',
            wallet=wallet,
            referrerWallet=referrer,
        )


class SelfReferral(MiningError):
    code = 'self_referral'

    def __init__(self, wallet):
        super().__init__('Cannot refer yourself', wallet=wallet)


class InvalidReferralCode(MiningError):
    status_code = 404
    code = 'invalid_referral_code'

    def __init__(self, code):
        super().__init__(f'Referral code {code} does not exist', referralCode=code)
