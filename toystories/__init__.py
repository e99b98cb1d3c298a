# Toys to Stories - photo of a toy to illustrated bilingual picture book
