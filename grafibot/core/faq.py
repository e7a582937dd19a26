"""
Store policy FAQ answered by keyword.
"""

import logging

from grafibot.core.search.ranking import normalize

logger = logging.getLogger(__name__)

# Keywords are matched against the accent-free, lowercased question
FAQ_ANSWERS: dict[str, str] = {
    "envio": (
        "Realizamos envíos a toda la república mexicana. El costo y tiempo de entrega "
        "varían según el destino y el tamaño del pedido. ¿Podrías indicarme tu código "
        "postal para darte una estimación más precisa?"
    ),
    "devolucion": (
        "Nuestra política de devoluciones permite cambios o reembolsos dentro de los 30 "
        "días posteriores a la compra, siempre y cuando el producto esté en su empaque "
        "original y sin usar. Se requiere el ticket de compra. Para más detalles, por "
        "favor contacta a nuestro equipo de soporte."
    ),
    "pago": (
        "Aceptamos pagos con tarjeta de crédito/débito (Visa, MasterCard, American "
        "Express), transferencias bancarias y pagos en efectivo en nuestras sucursales. "
        "También ofrecemos opciones de pago a meses sin intereses en compras mayores a "
        "$5,000 MXN."
    ),
    "garantia": (
        "Todos nuestros productos cuentan con garantía de fabricante por defectos de "
        "fábrica. La duración de la garantía varía según el producto. Por favor, conserva "
        "tu ticket de compra y contáctanos si presentas algún problema."
    ),
    "horario": (
        "Nuestro horario de atención en sucursales es de Lunes a Viernes de 9:00 AM a "
        "6:00 PM y Sábados de 9:00 AM a 2:00 PM. Nuestro servicio de atención al cliente "
        "en línea está disponible 24/7."
    ),
    "defecto": (
        "Si un producto presenta un defecto de fábrica, por favor, contáctanos "
        "inmediatamente con tu número de pedido y una descripción del problema. "
        "Gestionaremos el reemplazo o la reparación bajo garantía."
    ),
}

FAQ_FALLBACK = (
    "Lo siento, no encontré una respuesta específica para tu pregunta en nuestras "
    "preguntas frecuentes. ¿Podrías reformularla o darme más detalles?"
)


def answer_faq(question: str) -> str:
    """Return the first FAQ answer whose keyword appears in the question."""
    text = normalize(question)
    for keyword, answer in FAQ_ANSWERS.items():
        if keyword in text:
            logger.debug(f"FAQ '{keyword}' matched for: {question[:50]}")
            return answer
    logger.debug(f"No FAQ matched for: {question[:50]}")
    return FAQ_FALLBACK
