#!/usr/bin/env python3
import argparse, json, os, cv2, numpy as np

from utils.preprocess_image import load_image_gray, preprocess_image


def ssim_simple(x, y, C1=0.01**2, C2=0.03**2):
    x = x.astype(np.float32); y = y.astype(np.float32)
    mu_x = cv2.GaussianBlur(x, (11,11), 1.5); mu_y = cv2.GaussianBlur(y, (11,11), 1.5)
    sigma_x = cv2.GaussianBlur(x*x,(11,11),1.5) - mu_x*mu_x
    sigma_y = cv2.GaussianBlur(y*y,(11,11),1.5) - mu_y*mu_y
    sigma_xy= cv2.GaussianBlur(x*y,(11,11),1.5) - mu_x*mu_y
    num = (2*mu_x*mu_y + C1)*(2*sigma_xy + C2)
    den = (mu_x*mu_x + mu_y*mu_y + C1)*(sigma_x + sigma_y + C2)
    return float((num/(den+1e-12)).mean())


def main(argv=None):
    ap = argparse.ArgumentParser()
    ap.add_argument('--recipe', required=True, help='<prefix>_recipe.json written by main.py')
    args = ap.parse_args(argv)

    with open(args.recipe, 'r', encoding='utf-8') as f:
        recipe = json.load(f)
    base = os.path.dirname(os.path.abspath(args.recipe))
    prefix = os.path.basename(args.recipe)[:-len('_recipe.json')]

    target = preprocess_image(load_image_gray(os.path.join(base, recipe['image'])), int(recipe['radius']))
    threaded = cv2.imread(os.path.join(base, f'{prefix}_threaded.png'), cv2.IMREAD_GRAYSCALE)
    if threaded is None:
        raise FileNotFoundError(f'No rendered image next to {args.recipe}')
    sim_dark = 1.0 - threaded.astype(np.float32) / 255.0

    score = ssim_simple(target, sim_dark)
    print(f"SSIM (target darkness vs threaded): {score:.4f}")
    print("Lines:", recipe['stats']['lines_drawn'], "Seconds:", round(recipe['stats']['seconds'], 2))
    return score


if __name__ == '__main__':
    main()
