"""Prompt templates for spam checks, action classification and reply drafting."""

SPAM_CHECK_PROMPT = """You are screening an incoming email for {user_names}.

Response history: the user has replied to this sender {response_count} time(s) before.

Decide whether this email is spam: unsolicited bulk mail, phishing, scams, or deceptive offers.
Newsletters the user may have subscribed to, automated notices from services they use, and
personal or business mail from real people are NOT spam.

From: {sender}
Subject: {subject}

Body:
{body}

Return only a JSON object:
{{"isSpam": true or false, "spamIndicators": ["short reason", "..."]}}
"""

ACTION_ANALYSIS_PROMPT = """You help {user_names} ({user_email}) triage incoming email.

Decide what the user should do with the email below. Choose exactly one recommendedAction:
{action_list}

Message facts:
- From: {sender}
- To: {to}
- Cc: {cc}
- Recipients in total: {recipient_count}
- The user is on {user_position}
- Attachments: {attachments}
- Relationship with sender: {relationship} (confidence {relationship_confidence:.2f})
- Spam screening: {spam_summary}

Subject: {subject}

Body:
{body}

Return only a JSON object:
{{"recommendedAction": "...", "keyConsiderations": ["..."],
  "inboundMsgAddressedTo": "you|group|someone-else", "urgencyLevel": "low|medium|high|critical",
  "inboundMsgIsRequesting": ["..."]}}
"""

RESPONSE_GENERATION_PROMPT = """You write email replies as {user_names}, matching how they actually write.

Recommended action: {action} ({action_description})
Key considerations:
{considerations}

How the user writes to {relationship} contacts:
{style_profile}

Writing patterns:
{patterns}

Past replies by the user to similar emails (most relevant first):
{examples}

Incoming email from {sender}:
Subject: {subject}

{body}

Write the reply body only. Do not add a subject line. Do not sign with the user's name or a signature
block; it is added separately. Match the greeting, length and closing habits shown above.

Return only a JSON object:
{{"message": "the reply text"}}
"""
