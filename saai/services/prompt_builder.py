"""Prompt builder for the decision and grounded-explanation calls."""

import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional, Union

import tiktoken

from saai.models.message import ChatMessage
from saai.models.tenant import TenantConfig

logger = logging.getLogger(__name__)

MAX_HISTORY_TOKENS = 2000

TOOL_INSTRUCTIONS = """You have access to tools to help customers:
- search_products: Search for products by query
- compare_products: Compare two or more specific products side by side
- recommend_products: Recommend products based on preferences
- recommend_outfit: Recommend a complete outfit (shirt + pant + shoe)
- add_to_cart: Add a SINGLE product to cart (one item only)
- add_outfit_to_cart: Add a COMPLETE outfit to cart (all 3 items at once)
- remove_from_cart: Remove a product from the cart
- view_cart: View current cart contents
- checkout: Complete purchase and create order
- view_orders, get_order_status, cancel_order: Look up or cancel past orders

WHEN TO USE TOOLS:
- Use recommend_outfit when the user asks for: outfit, complete look, what to wear, dress me, style me, full look, occasion outfit
- Use recommend_products when the user asks for: recommendations, suggestions, "show me", "find me", looking for something
- Use search_products when the user wants to: search, browse, find specific items
- Use compare_products when the user wants to: compare, "X vs Y", "which is better", "difference between"
- Use add_to_cart when the user wants to add ONE SPECIFIC item: "add the shirt", "add p109"
- Use add_outfit_to_cart when the user wants to add an OUTFIT: "add this outfit", "add the outfit", "add these to cart", "buy this look", "get this outfit"
- Use view_cart when the user asks: what's in my cart, show cart, my cart, cart contents
- Use checkout when the user wants to: checkout, place order, complete purchase, buy now, proceed to payment
- Use view_orders / get_order_status / cancel_order for: my orders, where is my order, cancel my order

IMPORTANT: When the user says "add this outfit" or "add this to cart" after an outfit recommendation, use add_outfit_to_cart with the product IDs from the conversation.

STYLE CHANGES: If the user asks to change the style, formality level, or colors (e.g., "more casual", "more formal", "different color", "lighter color", "more street style"), you MUST call recommend_outfit again to generate a NEW outfit that matches their updated preferences. Do NOT just re-describe the previous outfit.

WHEN NOT TO USE TOOLS:
- Greetings (hello, hi, hey)
- Thank you messages
- General questions about the store
- Questions about shipping, returns, etc."""

GREETING_BEHAVIOR_RULES = """
=== A.1 GREETING BEHAVIOR ===
CRITICAL: If the user's message is ONLY a greeting or conversational filler like:
  - "hi", "hello", "hey", "ok", "thanks", "thank you", "cool", "nice", "great", "sure", "okay", "alright"
  - "good morning", "good evening", "what's up", "how are you"

Then you MUST:
  - Reply with a SHORT, friendly acknowledgment (1 sentence max)
  - Ask "What are you looking for today?" or similar
  - DO NOT suggest, recommend, or mention ANY products
  - DO NOT call any tool

ONLY propose products when the message contains CLEAR shopping intent like:
  - "looking for", "show me", "recommend", "find me", "I need", "I want"
  - "outfit for", "what should I wear", "help me find", "browse"
  - Specific product names, categories, or occasions"""

TOOL_CALLING_RULES = """
=== A.2 DETERMINISTIC TOOL CALLING ===
CRITICAL: You MUST call the appropriate tool BEFORE claiming any action was performed.

DO NOT SAY: "I've added X to cart" or "Here's your outfit" WITHOUT actually calling the tool first.
DO NOT hallucinate or pretend you performed an action.

When the user wants to:
- Add to cart → MUST call add_to_cart or add_outfit_to_cart FIRST
- See cart → MUST call view_cart FIRST
- Checkout → MUST call checkout FIRST
- Find products → MUST call search_products or recommend_products FIRST
- Get outfit → MUST call recommend_outfit FIRST

If you are unsure which tool to call, ASK the user for clarification.
If a tool call fails, tell the user honestly and offer alternatives."""

MULTI_ITEM_PARSING_RULES = """
=== A.3 MULTI-ITEM NATURAL LANGUAGE PARSING ===
When the user mentions MULTIPLE products in one message, you MUST:
1. Parse and extract EVERY product name/ID mentioned
2. Map each product to its exact product ID from the catalog
3. Call add_to_cart for EACH item separately, OR use add_outfit_to_cart if it's an outfit

Examples:
- "Add the blue shirt and khaki pants" → add_to_cart for shirt, then add_to_cart for pants
- "I'll take the oxford shoes too" → add_to_cart for shoes
- "Add this outfit" (after seeing shirt+pant+shoe) → add_outfit_to_cart with all 3 IDs

NEVER ignore items the user mentioned. Process ALL of them."""

CHECKOUT_RULES = """
=== A.4 CHECKOUT ENFORCEMENT ===
When the user says ANY of these (or similar):
  - "buy now", "checkout", "place order", "purchase", "complete order"
  - "I want to buy", "proceed to payment", "finalize", "confirm order"

You MUST call the checkout tool IMMEDIATELY.
DO NOT just say "proceeding to checkout" without calling the tool.
DO NOT ask for confirmation unless the cart is empty."""

TONE_RULES = """
=== A.5 TONE & STYLE ===
- Be SHORT and CONFIDENT - max 2-3 sentences per response
- Sound like a helpful friend, not a formal assistant
- Use casual, conversational language
- Avoid corporate-speak, marketing fluff, or over-explanation
- When showing products, focus on 2-3 key highlights, not full descriptions
- Use emojis sparingly (1-2 max per response) for friendly tone
- If recommending, briefly explain WHY (e.g., "this works for Eid because...")"""

ANTI_HALLUCINATION_RULES = """
=== A.6 ANTI-HALLUCINATION ===
ABSOLUTE RULES - NEVER BREAK THESE:
1. NEVER invent product names, prices, or IDs that don't exist in the catalog
2. NEVER suggest products that weren't returned by a tool call
3. NEVER make up availability, colors, sizes, or other product attributes
4. If you don't know something, say "I'm not sure" or check with a tool
5. If asked about a product not in catalog, say "I couldn't find that exact item"
6. ONLY mention products that are EXPLICITLY in the tool response
7. When listing products, use their EXACT names from the catalog"""

TOOLS_FIRST_ENFORCEMENT = """
=== A.7 TOOLS-FIRST POLICY ===
If the user asks you to DO something (not just ask a question), ALWAYS prefer calling a tool over giving a text reply.

User intent → Required action:
- "Add X" → CALL add_to_cart, don't just say "added"
- "Show me my cart" → CALL view_cart, don't describe from memory
- "Find me a shirt" → CALL search_products or recommend_products
- "I want to checkout" → CALL checkout tool
- "Recommend an outfit" → CALL recommend_outfit

Only respond with text (no tool) for:
- Greetings and small talk
- Questions you can answer from context (shipping policy, etc.)
- Clarification questions back to the user"""

PREFERENCE_PRECEDENCE_RULES = """
=== USER PREFERENCE PROFILE (soft hint) ===
The profile below was learned from products this user was shown earlier in the session.
- The user's explicit request ALWAYS overrides the profile.
- Use the profile ONLY to break ties when a request is ambiguous (e.g., "show me something nice").
- Never mention the profile itself to the user."""

GROUNDED_OUTFIT_RULES = """CRITICAL RULES:
1. DO NOT invent, imagine, or mention ANY products not listed below
2. DO NOT add extra items like accessories, bags, watches unless they are listed
3. ONLY describe the shirt, pant, and shoe I provide
4. Use the exact product names provided
5. Keep your response concise and natural"""

GROUNDED_PRODUCTS_RULES = """CRITICAL RULES:
1. DO NOT invent, imagine, or mention ANY products not in the list below
2. ONLY describe products from the list I provide
3. Use the exact product names provided
4. Keep your response concise and helpful"""

OUTFIT_SLOTS = (("shirt", "SHIRT"), ("pant", "PANT"), ("shoe", "SHOE"))

GENERIC_COMPLETION_TEXT = "I've completed that action for you. Is there anything else you'd like help with?"


def _persona(tenant_config: Optional[TenantConfig]) -> Dict[str, Any]:
    return (tenant_config.persona if tenant_config else None) or {}


def _join(lines: List[str]) -> str:
    return "\n".join(line for line in lines if line)


def build_system_prompt(
    tenant_config: Optional[TenantConfig],
    profile_summary: str = "",
    preference_hint: str = "",
    recent_products_context: str = "",
) -> str:
    """
    Decision-call system prompt: persona, behavior rules, tool guidance,
    brand voice, then the session's preference profile and recent products.
    """
    persona = _persona(tenant_config)
    brand_voice = persona.get("brandVoice") or {}
    rules = brand_voice.get("rules")
    tone_rules = " ".join(rules) if isinstance(rules, list) else ""
    name = persona.get("name") or "SAAI"
    role = persona.get("role") or "AI sales assistant"

    lines = [
        f"You are {name}, {role} for a fashion and lifestyle ecommerce app.",
        GREETING_BEHAVIOR_RULES,
        TOOL_CALLING_RULES,
        ANTI_HALLUCINATION_RULES,
        TOOLS_FIRST_ENFORCEMENT,
        TOOL_INSTRUCTIONS,
        MULTI_ITEM_PARSING_RULES,
        CHECKOUT_RULES,
        TONE_RULES,
        "CRITICAL: The user already sees your introduction in the app UI.",
        "DO NOT introduce yourself again or explain what you can do.",
        'DO NOT say "How can I help you today?" as your first response to greetings.',
        "Always answer the user's latest message directly and concisely.",
        "Your job is to help users find and buy clothes, shoes, and accessories.",
        "Prioritize:",
        "- Understanding the occasion (eid, wedding, office, casual, travel, party)",
        "- Suggesting complete outfits when appropriate (top, bottom, shoes)",
        "- Explaining briefly WHY items work together (color, style, occasion fit)",
        "- Being concise and sales-focused",
        f"Tone: {brand_voice['tone']}." if brand_voice.get("tone") else "",
        tone_rules,
    ]

    if profile_summary:
        lines.append(PREFERENCE_PRECEDENCE_RULES)
        lines.append(f"User preference profile: {profile_summary}")
    if preference_hint:
        lines.append(preference_hint)
    if recent_products_context:
        lines.append(recent_products_context)

    return _join(lines)


def build_grounded_system_prompt(tenant_config: Optional[TenantConfig], base_rules: str) -> str:
    persona = _persona(tenant_config)
    brand_voice = persona.get("brandVoice") or {}
    name = persona.get("name") or "SAAI"

    return _join([
        f"You are {name}, a shopping assistant. You MUST ONLY talk about the exact products I give you.",
        f"Your tone should be: {brand_voice['tone']}." if brand_voice.get("tone") else "",
        ANTI_HALLUCINATION_RULES,
        TONE_RULES,
        base_rules,
    ])


@lru_cache(maxsize=1)
def _get_encoding():
    try:
        return tiktoken.get_encoding("cl100k_base")
    except Exception:
        # Fallback to simple message limit if tokenizer fails
        logger.warning("cl100k_base tokenizer unavailable, truncating history by message count")
        return None


def _history_entry(entry: Union[ChatMessage, Dict[str, Any], str]) -> Dict[str, str]:
    if isinstance(entry, str):
        return {"role": "user", "content": entry}
    if isinstance(entry, ChatMessage):
        role, text = entry.role, entry.text
    else:
        role = entry.get("role") or "user"
        text = entry.get("content") or entry.get("message") or ""
    # Client history can't inject system turns
    if role not in ("user", "assistant"):
        role = "user"
    return {"role": role, "content": text}


def truncate_history(history: List[Dict[str, str]], max_tokens: int = MAX_HISTORY_TOKENS) -> List[Dict[str, str]]:
    """Keep the most recent turns that fit the token budget."""
    encoding = _get_encoding()
    if encoding is None:
        return history[-10:]

    selected: List[Dict[str, str]] = []
    total_tokens = 0
    for msg in reversed(history):
        msg_tokens = len(encoding.encode(msg["content"]))
        if total_tokens + msg_tokens > max_tokens:
            break
        selected.insert(0, msg)
        total_tokens += msg_tokens
    return selected


def build_messages(
    system_prompt: str,
    user_message: str,
    conversation_history: Optional[List[Union[ChatMessage, Dict[str, Any]]]] = None,
) -> List[Dict[str, str]]:
    """
    Build the chat message list.

    Order: system prompt, token-truncated history, current user message.
    """
    history = [_history_entry(entry) for entry in conversation_history or []]
    history = [msg for msg in history if msg["content"]]

    messages = [{"role": "system", "content": system_prompt}]
    messages.extend(truncate_history(history))
    messages.append({"role": "user", "content": user_message})
    return messages


def _product_list(tool_result: Dict[str, Any]) -> List[Dict[str, Any]]:
    for key in ("items", "products", "results", "recommendations"):
        value = tool_result.get(key)
        if isinstance(value, list) and value:
            return value
    return []


def _outfit(tool_result: Dict[str, Any]) -> Dict[str, Any]:
    items = tool_result.get("items")
    return items if isinstance(items, dict) else tool_result


def _csv(values: Any) -> str:
    return ", ".join(values) if isinstance(values, list) else ""


def build_outfit_prompt(user_message: str, tool_result: Dict[str, Any]) -> str:
    outfit = _outfit(tool_result)

    prompt = f'User asked: "{user_message}"\n\n'
    prompt += (
        "INSTRUCTION: If the user asked about an event or occasion (like eid, wedding, office, party, casual, "
        "travel), explicitly tie the outfit to that event and explain how it fits (e.g., color, formality, "
        "comfort, style). Still do NOT invent new products.\n\n"
    )
    prompt += "Here is the outfit I've selected from our catalog. ONLY talk about these exact items:\n\n"

    for slot, label in OUTFIT_SLOTS:
        item = outfit.get(slot)
        if not isinstance(item, dict):
            continue
        prompt += f"{label}: {item.get('name')}\n"
        prompt += f"  - Price: ₹{item.get('price')}\n"
        prompt += f"  - Colors: {_csv(item.get('colors'))}\n"
        prompt += f"  - Tags: {_csv(item.get('tags'))}\n\n"

    prompt += "Write a short, friendly message (2-3 sentences) explaining why this outfit works well for the user's request. "
    prompt += "Mention the products by their exact names. Explain WHY these pieces work together (color coordination, style, occasion fit). "
    prompt += "DO NOT recommend any additional items not listed above."
    return prompt


def _numbered_products(products: List[Dict[str, Any]]) -> str:
    text = ""
    for index, p in enumerate(products[:5], start=1):
        text += f"{index}. {p.get('name')}\n"
        text += f"   - Price: ₹{p.get('price')}\n"
        text += f"   - Category: {p.get('category')}\n"
        text += f"   - Colors: {_csv(p.get('colors'))}\n"
        text += f"   - Tags: {_csv(p.get('tags'))}\n\n"
    return text


def build_products_prompt(user_message: str, tool_result: Dict[str, Any]) -> str:
    prompt = f'User asked: "{user_message}"\n\n'
    prompt += "Here are the products I found. ONLY talk about these exact items:\n\n"
    prompt += _numbered_products(_product_list(tool_result))

    prompt += "Write a short, helpful message (2-3 sentences) introducing these products to the user. "
    prompt += "Mention 2-3 products by their exact names and briefly explain why they fit the user's request. "
    prompt += "DO NOT recommend any products not in this list.\n\n"

    prompt += "CROSS-SELL HINT: If it makes sense, you may suggest exactly ONE additional complementary item type "
    prompt += "(like a belt, watch, or socks) conceptually, but do not mention a specific product name unless it is in the list above. "
    prompt += "Keep the main answer focused on the products listed."
    return prompt


def build_comparison_prompt(user_message: str, tool_result: Dict[str, Any]) -> str:
    prompt = f'User asked: "{user_message}"\n\n'
    prompt += "Here are the products being compared. ONLY talk about these exact items:\n\n"
    prompt += _numbered_products(_product_list(tool_result))

    prompt += "Write a short comparison (2-4 sentences). Point out the key differences in price, style and colors, "
    prompt += "and say which one suits which need. Use the exact product names. "
    prompt += "DO NOT mention any products not in this list."
    return prompt


# Deterministic replies for actions that don't need a second LLM call

def generate_cart_confirmation(params: Dict[str, Any], tool_result: Dict[str, Any]) -> str:
    if tool_result.get("success") is False:
        return f"I couldn't add that item to your cart. {tool_result.get('message') or 'Please try again.'}"

    added = tool_result.get("addedProduct") or {}
    item = added.get("name") or params.get("productId") or "the item"
    quantity = params.get("quantity") or 1
    prefix = f"{quantity} of " if isinstance(quantity, int) and quantity > 1 else ""
    return f"I've added {prefix}{item} to your cart! Would you like to continue shopping or proceed to checkout?"


def generate_outfit_cart_confirmation(tool_result: Dict[str, Any]) -> str:
    added = tool_result.get("addedItems") or []
    if not added:
        return "I couldn't find those items in our catalog. Please try again."

    names = ", ".join(item.get("name") or item.get("id") for item in added)
    total = (tool_result.get("summary") or {}).get("totalAmount", 0)
    return f"🛒 I've added your complete outfit to the cart: {names}. Your cart total is now ₹{total}. Ready to checkout?"


def generate_cart_summary(tool_result: Dict[str, Any]) -> str:
    cart = tool_result.get("cart")
    items = cart if isinstance(cart, list) else (cart or {}).get("items") or []
    if not tool_result.get("success") or not items:
        return "Your cart is currently empty. Would you like me to help you find some products?"

    summary = tool_result.get("summary") or {}
    item_count = summary.get("totalItems") or len(items)
    total = summary.get("totalAmount", 0)

    def item_name(item):
        return item.get("name") or (item.get("productSnapshot") or {}).get("name") or "item"

    if item_count == 1:
        item = items[0]
        return f"You have {item_name(item)} (×{item.get('quantity', 1)}) in your cart for ₹{total}. Ready to checkout or want to keep shopping?"

    names = ", ".join(item_name(i) for i in items[:3])
    more = f" and {len(items) - 3} more" if len(items) > 3 else ""
    return f"You have {item_count} items in your cart: {names}{more}. Total: ₹{total}. Ready to checkout?"


def generate_checkout_confirmation(tool_result: Dict[str, Any]) -> str:
    if not tool_result.get("success"):
        return f"I couldn't complete the checkout. {tool_result.get('message') or 'Please try again or contact support.'}"

    order = tool_result.get("order") or {}
    order_id = order.get("orderId") or "N/A"
    total = (order.get("summary") or {}).get("totalAmount") or order.get("totalAmount") or 0
    payment_method = order.get("paymentMethod") or "online"
    return (
        f"🎉 Order confirmed! Your order #{order_id} for ₹{total} ({payment_method}) has been placed successfully. "
        f"Thank you for shopping with us!"
    )


def generate_remove_confirmation(tool_result: Dict[str, Any]) -> str:
    if not tool_result.get("success"):
        return f"I couldn't remove that item. {tool_result.get('message') or 'Please try again.'}"
    total = (tool_result.get("summary") or {}).get("totalAmount", 0)
    return f"{tool_result.get('message')} Your cart total is now ₹{total}."


def generate_order_reply(action: str, tool_result: Dict[str, Any]) -> str:
    """Replies for view_orders, get_order_status and cancel_order."""
    message = tool_result.get("message") or ""
    if action == "view_orders":
        orders = tool_result.get("orders") or []
        if not orders:
            return "You have no orders yet. Want me to help you find something?"
        latest = orders[0]
        return f"{message} Your most recent order #{latest['orderId']} is {latest['status']}."
    return message or GENERIC_COMPLETION_TEXT


def generate_fallback_explanation(action: str, tool_result: Dict[str, Any]) -> str:
    """Reply used when the grounded explanation call fails."""
    if action == "recommend_outfit":
        outfit = _outfit(tool_result)
        names = [outfit[slot]["name"] for slot, _ in OUTFIT_SLOTS if isinstance(outfit.get(slot), dict)]
        if names:
            return f"I've put together a great outfit for you: {', '.join(names)}. These pieces work well together for your occasion!"

    if action in ("recommend_products", "search_products"):
        products = _product_list(tool_result)
        if products:
            names = ", ".join(p.get("name") for p in products[:3])
            return f"I found some great options for you including {names}. Take a look!"

    if action == "compare_products":
        products = _product_list(tool_result)
        if len(products) < 2:
            return "I need at least two products to compare."
        names = " vs ".join(p.get("name") for p in products[:5])
        return f"Here's a comparison of {names}. Check the details above to see which one fits your needs better!"

    return "I've found some options that might interest you. Let me know if you'd like more details!"
