"""Invite code module for LinkBrain.

Trial referral system:
- Every user starts with 5 single-use invite codes
- Inviter gets 2 extra trial days when someone redeems one of their codes
- Redeeming user gets a 15-day trial and their own 5 codes
"""

from linkbrain.invites.codes import generate_invite_code, is_valid_code_format
from linkbrain.invites.errors import InviteError
from linkbrain.invites.service import InviteService

__all__ = ["InviteError", "InviteService", "generate_invite_code", "is_valid_code_format"]
