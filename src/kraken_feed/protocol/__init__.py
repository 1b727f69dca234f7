from .frame import (
    decode_frame as decode_frame,
)
from .frame import (
    merge_depth_payloads as merge_depth_payloads,
)
from .models import (
    AccountOrderUpdate as AccountOrderUpdate,
)
from .models import (
    AccountTradeUpdate as AccountTradeUpdate,
)
from .models import (
    AnyChannelPayload as AnyChannelPayload,
)
from .models import (
    Candle as Candle,
)
from .models import (
    ChannelPayload as ChannelPayload,
)
from .models import (
    Envelope as Envelope,
)
from .models import (
    Event as Event,
)
from .models import (
    OpenOrdersUpdate as OpenOrdersUpdate,
)
from .models import (
    OrderBookDelta as OrderBookDelta,
)
from .models import (
    OrderBookSnapshot as OrderBookSnapshot,
)
from .models import (
    OrderEvent as OrderEvent,
)
from .models import (
    OrderEventKind as OrderEventKind,
)
from .models import (
    PayloadKind as PayloadKind,
)
from .models import (
    PriceLevel as PriceLevel,
)
from .models import (
    Spread as Spread,
)
from .models import (
    Ticker as Ticker,
)
from .models import (
    TradeList as TradeList,
)
from .models import (
    Update as Update,
)
from .models import (
    kind_of as kind_of,
)
from .payloads import (
    channel_family as channel_family,
)
from .payloads import (
    decode_event_payload as decode_event_payload,
)
from .payloads import (
    decode_payload as decode_payload,
)
