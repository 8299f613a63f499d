"""
Маскирование исходного текста.

Маска — три вложенных непрозрачных белых прямоугольника, расширенных
на 3, 2 и 1 единицы. Средний слой рисуется с opacity 0.98 в режиме
Multiply и выжигает остаточные края глифов; внешний и внутренний слои —
полностью непрозрачные Normal. Вместе они закрывают ореолы
сглаживания, которые оставляет одиночный прямоугольник.
"""

from __future__ import annotations
from typing import List

from redline.core.config import MASK_INFLATIONS, MASK_LAYER_STYLES, MASK_COLOR
from redline.core.models import Bounds, RectOp
from redline.core.types import BlendMode
from redline.utils.geometry import flip_rect_y, inflate


def mask_ops(bounds: Bounds, page_height: float) -> List[RectOp]:
    """
    Строит операции маски для области ledger'а.

    Args:
        bounds: Область в единицах документа (y от верхнего края)
        page_height: Высота страницы

    Returns:
        Три RectOp в системе координат PDF, от внешнего к внутреннему
    """
    target = flip_rect_y(bounds, page_height)
    ops: List[RectOp] = []

    for amount, (opacity, blend) in zip(MASK_INFLATIONS, MASK_LAYER_STYLES):
        r = inflate(target, amount)
        ops.append(
            RectOp(
                x=r.x,
                y=r.y,
                width=r.width,
                height=r.height,
                color=MASK_COLOR,
                opacity=opacity,
                blend_mode=BlendMode(blend),
            )
        )

    return ops
